"""Decoding of OpenPose heat maps and part affinity fields into human poses."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from adaskit.results import HumanPose

# Pairs of 1-based joint ids joined by each limb.
_LIMB_IDS_HEATMAP: tuple[tuple[int, int], ...] = (
    (2, 3), (2, 6), (3, 4), (4, 5), (6, 7), (7, 8), (2, 9), (9, 10), (10, 11),
    (2, 12), (12, 13), (13, 14), (2, 1), (1, 15), (15, 17), (1, 16), (16, 18),
    (3, 17), (6, 18),
)

# Channel ids of the x and y part affinity fields for each limb.
_LIMB_IDS_PAF: tuple[tuple[int, int], ...] = (
    (31, 32), (39, 40), (33, 34), (35, 36), (41, 42), (43, 44), (19, 20),
    (21, 22), (23, 24), (25, 26), (27, 28), (29, 30), (47, 48), (49, 50),
    (53, 54), (51, 52), (55, 56), (37, 38), (45, 46),
)

_EXTRA_LIMBS = (17, 18)
_MID_NUM = 10
_SCORE_THRESHOLD = -100.0


@dataclass
class Peak:
    """A local maximum of one heat map."""

    id: int = -1
    pos: tuple[float, float] = (0.0, 0.0)
    score: float = 0.0


@dataclass
class HumanPoseByPeaksIndices:
    """A pose under construction: for each joint, the index of its peak or -1."""

    peaks_indices: list[int] = field(default_factory=list)
    n_joints: int = 0
    score: float = 0.0


@dataclass
class TwoJointsConnection:
    first_joint_idx: int
    second_joint_idx: int
    score: float


def _new_subset(keypoints_number: int) -> HumanPoseByPeaksIndices:
    return HumanPoseByPeaksIndices([-1] * keypoints_number)


def _round(value: float) -> int:
    return int(round(value))


def find_peaks(heat_map, min_peaks_distance: float, confidence_threshold: float) -> list[Peak]:
    """Find the local maxima of a 2-D heat map.

    A point is a peak when its value reaches the confidence threshold and is
    strictly greater than its four neighbours, where neighbours below the
    threshold or outside the map count as zero. Peaks are ordered by x, and a
    peak closer than ``min_peaks_distance`` to an earlier kept peak is dropped.
    """
    hm = np.asarray(heat_map, dtype=np.float32)
    if hm.ndim != 2:
        raise ValueError(f"heat map must be 2-dimensional, got {hm.ndim} dimensions")

    thresholded = np.where(hm >= confidence_threshold, hm, np.float32(0))
    padded = np.pad(thresholded, 1)
    center = padded[1:-1, 1:-1]
    mask = (
        (center > padded[1:-1, 2:])
        & (center > padded[1:-1, :-2])
        & (center > padded[2:, 1:-1])
        & (center > padded[:-2, 1:-1])
    )
    ys, xs = np.nonzero(mask)
    order = np.argsort(xs, kind="stable")
    points = [(int(xs[i]), int(ys[i])) for i in order]

    is_actual = [True] * len(points)
    peaks: list[Peak] = []
    for i, (x, y) in enumerate(points):
        if not is_actual[i]:
            continue
        for j in range(i + 1, len(points)):
            ox, oy = points[j]
            if math.sqrt((x - ox) ** 2 + (y - oy) ** 2) < min_peaks_distance:
                is_actual[j] = False
        peaks.append(Peak(len(peaks), (float(x), float(y)), float(hm[y, x])))
    return peaks


def _add_lonely_peaks(
    subset: list[HumanPoseByPeaksIndices],
    candidates: Sequence[Peak],
    joint_idx: int,
    keypoints_number: int,
) -> None:
    for peak in candidates:
        if any(s.peaks_indices[joint_idx] == peak.id for s in subset):
            continue
        person = _new_subset(keypoints_number)
        person.peaks_indices[joint_idx] = peak.id
        person.n_joints = 1
        person.score = peak.score
        subset.append(person)


def _limb_connections(
    cand_a: Sequence[Peak],
    cand_b: Sequence[Peak],
    paf_x: np.ndarray,
    paf_y: np.ndarray,
    height_n: int,
    mid_points_score_threshold: float,
    found_mid_points_ratio_threshold: float,
) -> list[TwoJointsConnection]:
    temp: list[TwoJointsConnection] = []
    for i, peak_a in enumerate(cand_a):
        ax, ay = peak_a.pos
        for j, peak_b in enumerate(cand_b):
            bx, by = peak_b.pos
            mid_x, mid_y = _round(ax * 0.5 + bx * 0.5), _round(ay * 0.5 + by * 0.5)
            dx, dy = bx - ax, by - ay
            norm_vec = math.hypot(dx, dy)
            if norm_vec == 0:
                continue
            vx, vy = dx / norm_vec, dy / norm_vec
            score = vx * float(paf_x[mid_y, mid_x]) + vy * float(paf_y[mid_y, mid_x])
            suc_ratio = 0.0
            mid_score = 0.0
            if score > _SCORE_THRESHOLD:
                p_sum = 0.0
                p_count = 0
                step_w = dx / (_MID_NUM - 1)
                step_h = dy / (_MID_NUM - 1)
                for n in range(_MID_NUM):
                    px = _round(ax + n * step_w)
                    py = _round(ay + n * step_h)
                    score = vx * float(paf_x[py, px]) + vy * float(paf_y[py, px])
                    if score > mid_points_score_threshold:
                        p_sum += score
                        p_count += 1
                # Integer division: only a full set of good mid points counts.
                suc_ratio = float(p_count // _MID_NUM)
                ratio = p_sum / p_count if p_count > 0 else 0.0
                mid_score = ratio + min(height_n / norm_vec - 1, 0.0)
            if mid_score > 0 and suc_ratio > found_mid_points_ratio_threshold:
                temp.append(TwoJointsConnection(i, j, mid_score))

    temp.sort(key=lambda c: c.score, reverse=True)
    num_limbs = min(len(cand_a), len(cand_b))
    used_a: set[int] = set()
    used_b: set[int] = set()
    connections: list[TwoJointsConnection] = []
    for conn in temp:
        if len(connections) == num_limbs:
            break
        if conn.first_joint_idx in used_a or conn.second_joint_idx in used_b:
            continue
        connections.append(
            TwoJointsConnection(
                cand_a[conn.first_joint_idx].id, cand_b[conn.second_joint_idx].id, conn.score
            )
        )
        used_a.add(conn.first_joint_idx)
        used_b.add(conn.second_joint_idx)
    return connections


def group_peaks_to_poses(
    all_peaks: Sequence[Sequence[Peak]],
    pafs,
    keypoints_number: int,
    mid_points_score_threshold: float,
    found_mid_points_ratio_threshold: float,
    min_joints_number: int,
    min_subset_score: float,
) -> list[HumanPose]:
    """Assemble the peaks of every joint into poses using the part affinity fields."""
    if len(all_peaks) < len(_LIMB_IDS_HEATMAP) - 1:
        raise ValueError(
            f"expected peaks for at least {len(_LIMB_IDS_HEATMAP) - 1} joints, got {len(all_peaks)}"
        )
    paf_maps = [np.asarray(p, dtype=np.float32) for p in pafs]
    if not paf_maps:
        raise ValueError("no part affinity fields given")

    candidates = [peak for peaks in all_peaks for peak in peaks]
    subset: list[HumanPoseByPeaksIndices] = []
    map_idx_offset = keypoints_number + 1
    height_n = paf_maps[0].shape[0] // 2

    for k, ((heat_a, heat_b), (paf_a, paf_b)) in enumerate(zip(_LIMB_IDS_HEATMAP, _LIMB_IDS_PAF)):
        idx_a = heat_a - 1
        idx_b = heat_b - 1
        cand_a = all_peaks[idx_a]
        cand_b = all_peaks[idx_b]
        if not cand_a and not cand_b:
            continue
        if not cand_a:
            _add_lonely_peaks(subset, cand_b, idx_b, keypoints_number)
            continue
        if not cand_b:
            _add_lonely_peaks(subset, cand_a, idx_a, keypoints_number)
            continue

        connections = _limb_connections(
            cand_a,
            cand_b,
            paf_maps[paf_a - map_idx_offset],
            paf_maps[paf_b - map_idx_offset],
            height_n,
            mid_points_score_threshold,
            found_mid_points_ratio_threshold,
        )
        if not connections:
            continue

        if k == 0:
            subset = []
            for conn in connections:
                person = _new_subset(keypoints_number)
                person.peaks_indices[idx_a] = conn.first_joint_idx
                person.peaks_indices[idx_b] = conn.second_joint_idx
                person.n_joints = 2
                person.score = (
                    candidates[conn.first_joint_idx].score
                    + candidates[conn.second_joint_idx].score
                    + conn.score
                )
                subset.append(person)
        elif k in _EXTRA_LIMBS:
            for conn in connections:
                index_a, index_b = conn.first_joint_idx, conn.second_joint_idx
                for person in subset:
                    indices = person.peaks_indices
                    if indices[idx_a] == index_a and indices[idx_b] == -1:
                        indices[idx_b] = index_b
                    elif indices[idx_b] == index_b and indices[idx_a] == -1:
                        indices[idx_a] = index_a
        else:
            for conn in connections:
                index_a, index_b = conn.first_joint_idx, conn.second_joint_idx
                found = False
                for person in subset:
                    if person.peaks_indices[idx_a] == index_a:
                        person.peaks_indices[idx_b] = index_b
                        person.n_joints += 1
                        person.score += candidates[index_b].score + conn.score
                        found = True
                if not found:
                    person = _new_subset(keypoints_number)
                    person.peaks_indices[idx_a] = index_a
                    person.peaks_indices[idx_b] = index_b
                    person.n_joints = 2
                    person.score = (
                        candidates[index_a].score + candidates[index_b].score + conn.score
                    )
                    subset.append(person)

    poses: list[HumanPose] = []
    for person in subset:
        if person.n_joints < min_joints_number or person.score / person.n_joints < min_subset_score:
            continue
        keypoints = [(-1.0, -1.0)] * keypoints_number
        for position, peak_idx in enumerate(person.peaks_indices):
            if peak_idx >= 0:
                x, y = candidates[peak_idx].pos
                keypoints[position] = (x + 0.5, y + 0.5)
        poses.append(HumanPose(keypoints, person.score * max(0, person.n_joints - 1)))
    return poses