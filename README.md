# adaskit

Pieces for building camera-based driver-assistance pipelines in Python.

| Module | What it holds |
| --- | --- |
| `adaskit.openpose_decoder` | `find_peaks` and `group_peaks_to_poses`: OpenPose heat maps and part affinity fields to `HumanPose` objects; also `Peak`, `HumanPoseByPeaksIndices`, `TwoJointsConnection` |
| `adaskit.segmentation` | `decode_segmentation` (network output to a `uint8` class map at the image's size) and `load_labels` |
| `adaskit.results` | `ResultBase`, `InferenceResult`, `ClassificationResult`, `DetectionResult`, `RetinaFaceDetectionResult`, `ImageResult`, `HumanPoseResult` and the data they carry |
| `adaskit.metadata` | `InputData`, `ImageInputData`, `MetaData`, `ImageMetaData`, `ClassificationImageMetaData` |
| `adaskit.requests_pool` | `RequestsPool`: a fixed set of inference requests, each idle or in use |
| `adaskit.async_pipeline` | `AsyncPipeline`: submits frames to idle requests and returns finished results in submission order or as they finish |
| `adaskit.cpu_monitor` | `CpuMonitor` and `parse_idle_cpu_stat`: per-core CPU load from `/proc/stat` |
| `adaskit.memory_monitor` | `MemoryMonitor`, `MemState` and `parse_meminfo`: memory and swap use from `/proc/meminfo` |
| `adaskit.presenter` | `Presenter`, `MonitorType`, `keys_to_monitors`: draws the monitors as small graphs on a frame and summarises them as text |
| `adaskit.circular_buffer` | `CircularBuffer`: a thread-safe ring buffer that overwrites its oldest item when full |

## Installation

```
pip install adaskit
```

It needs numpy and Pillow.

## Examples

### Ring buffer

```python
from adaskit.circular_buffer import CircularBuffer

buf = CircularBuffer(6)
for frame_no in range(8):
    buf.put(frame_no)
len(buf)        # 6
buf.get()       # 2: the two oldest items were overwritten
```

`get` on an empty buffer raises `IndexError`.

### Segmentation

`decode_segmentation` takes an NCHW output of per-class scores (or a
single-channel integer output of class ids, as CHW or NCHW) and returns a
`uint8` map resized with nearest-neighbour sampling:

```python
import numpy as np
from adaskit.segmentation import decode_segmentation

scores = np.random.rand(1, 4, 32, 32).astype(np.float32)
mask = decode_segmentation(scores, input_width=640, input_height=480)
mask.shape      # (480, 640)
```

`load_labels(path)` returns one label per line; an empty path gives `[]`.

### Pose decoding

`find_peaks(heat_map, min_peaks_distance, confidence_threshold)` returns the
peaks of one 2-D heat map. `group_peaks_to_poses` takes a list of such peak
lists (one per joint, 18 joints for the standard layout), the part affinity
fields as a list of 2-D arrays, and the grouping thresholds, and returns a list
of `HumanPose` with `(x, y)` keypoints (`(-1, -1)` for a missing joint).

### Asynchronous pipeline

`AsyncPipeline(model, requests)` works with any objects of the right shape:

- a model with an `outputs_names` sequence, `preprocess(input_data, request)`
  and `postprocess(inference_result)`, and optionally
  `on_load_completed(requests)`;
- requests with `set_callback(callback)`, `start_async()`, `wait()` and
  `get_tensor(name)`; the callback is called with `None` or an exception when
  the request finishes.

```python
with AsyncPipeline(model, requests) as pipeline:
    frame_id = pipeline.submit_data(ImageInputData(image), ImageMetaData(image, t))
    pipeline.wait_for_data()
    result = pipeline.get_result()   # None if nothing is ready yet
```

`submit_data` returns `-1` when no request is idle. An error raised while
completing a request is raised again by `wait_for_data`. Leaving the `with`
block waits for every request in use.

### Resource monitors

```python
from adaskit.presenter import Presenter

presenter = Presenter("CDM")
# once per video frame (an H x W x 3 uint8 array):
presenter.draw_graphs(frame)
for line in presenter.report_means():
    print(line)
```

`Presenter` takes either a key string or a set of `MonitorType`. Samples are
taken at most once a second from inside `draw_graphs`. `handle_key` switches
graphs on and off: `C` for average CPU, `D` for per-core load, `M` for memory,
and `H` to hide or show all of them; other keys are ignored.

The monitors read `/proc/stat` and `/proc/meminfo` by default; other paths can
be passed (`CpuMonitor(n_cores, stat_path)`, `MemoryMonitor(meminfo_path)`) and
handed to `Presenter(cpu_monitor=..., memory_monitor=...)`. A monitor starts
sampling once its `history_size` is set above zero. Enabling the memory
monitor raises `RuntimeError` if no `MemTotal` can be read, so on systems
without `/proc/meminfo` a path to such a file must be given.

## What it does not do

adaskit does not load or run neural networks, capture video, or open windows.
The pipeline drives inference requests supplied by the caller, and the
presenter draws into arrays the caller displays. There is no command-line
program.

## Running the tests

```
pip install "adaskit[test]"
pytest
```