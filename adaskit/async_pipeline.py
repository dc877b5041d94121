"""Asynchronous inference over a pool of requests, with results returned in order or as ready."""

from __future__ import annotations

import threading
from typing import Any, Iterable, Optional, Protocol, Sequence

from adaskit.metadata import InputData, MetaData
from adaskit.requests_pool import InferRequest, RequestsPool
from adaskit.results import InferenceResult, ResultBase

_MAX_FRAME_ID = 2**63 - 1


class Model(Protocol):
    """What the pipeline needs from a model wrapper."""

    outputs_names: Sequence[str]

    def preprocess(self, input_data: InputData, request: InferRequest) -> Any: ...

    def postprocess(self, inference_result: InferenceResult) -> ResultBase: ...


def _next_frame_id(frame_id: int) -> int:
    frame_id += 1
    return 0 if frame_id > _MAX_FRAME_ID else frame_id


class AsyncPipeline:
    """Submits frames to idle requests and collects the finished results.

    The model may define ``on_load_completed(requests)``; it is called once
    with every request of the pool.
    """

    def __init__(self, model: Model, requests: Iterable[InferRequest]) -> None:
        self._model = model
        self._pool = RequestsPool(requests)
        if not self._pool.infer_requests():
            raise ValueError("the pipeline needs at least one inference request")
        self._completed: dict[int, InferenceResult] = {}
        self._lock = threading.Lock()
        self._cond = threading.Condition(self._lock)
        self._input_frame_id = 0
        self._output_frame_id = 0
        self._callback_exception: BaseException | None = None

        on_load_completed = getattr(model, "on_load_completed", None)
        if callable(on_load_completed):
            on_load_completed(self._pool.infer_requests())

    def wait_for_data(self, keep_order: bool = True) -> None:
        """Block until a request is idle or a result is ready.

        With ``keep_order`` only the next result in submission order counts
        as ready. Re-raises the first error met while completing a request.
        """

        def ready() -> bool:
            if self._callback_exception is not None or self._pool.is_idle_request_available():
                return True
            if keep_order:
                return self._output_frame_id in self._completed
            return bool(self._completed)

        with self._cond:
            self._cond.wait_for(ready)
            if self._callback_exception is not None:
                raise self._callback_exception

    def is_ready_to_process(self) -> bool:
        """True if a request is idle and another frame can be submitted."""
        return self._pool.is_idle_request_available()

    def wait_for_total_completion(self) -> None:
        """Wait until every submitted request has finished."""
        self._pool.wait_for_total_completion()

    def submit_data(self, input_data: InputData, meta_data: Optional[MetaData] = None) -> int:
        """Start inference on the input and return its frame id, or -1 if no request is idle."""
        frame_id = self._input_frame_id
        request = self._pool.get_idle_request()
        if request is None:
            return -1

        internal_model_data = self._model.preprocess(input_data, request)

        def on_complete(error: Optional[BaseException]) -> None:
            with self._cond:
                try:
                    if error is not None:
                        raise error
                    result = InferenceResult(
                        frame_id=frame_id,
                        meta_data=meta_data,
                        internal_model_data=internal_model_data,
                        outputs_data={
                            name: request.get_tensor(name) for name in self._model.outputs_names
                        },
                    )
                    self._completed[frame_id] = result
                    self._pool.set_request_idle(request)
                except Exception as exc:
                    if self._callback_exception is None:
                        self._callback_exception = exc
                self._cond.notify()

        request.set_callback(on_complete)
        self._input_frame_id = _next_frame_id(self._input_frame_id)
        request.start_async()
        return frame_id

    def _take_inference_result(self, keep_order: bool) -> InferenceResult:
        result = InferenceResult()
        with self._lock:
            if keep_order:
                key = self._output_frame_id if self._output_frame_id in self._completed else None
            else:
                key = next(iter(self._completed), None)
            if key is not None:
                result = self._completed.pop(key)
        if not result.is_empty():
            self._output_frame_id = _next_frame_id(result.frame_id)
        return result

    def get_result(self, keep_order: bool = True) -> ResultBase | None:
        """Postprocess and return a finished result, or None if none is ready.

        With ``keep_order`` results come back in the order they were submitted.
        """
        inference_result = self._take_inference_result(keep_order)
        if inference_result.is_empty():
            return None
        result = self._model.postprocess(inference_result)
        result.frame_id = inference_result.frame_id
        result.meta_data = inference_result.meta_data
        return result

    def __enter__(self) -> AsyncPipeline:
        return self

    def __exit__(self, *args: object) -> None:
        self.wait_for_total_completion()
        for request in self._pool.infer_requests():
            request.set_callback(lambda error: None)