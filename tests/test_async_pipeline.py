import threading

import pytest

from adaskit.async_pipeline import AsyncPipeline
from adaskit.metadata import ImageInputData, ImageMetaData
from adaskit.results import ImageResult, InternalImageModelData


class FakeRequest:
    def __init__(self, auto_complete=True, error=None, delay=None):
        self.auto_complete = auto_complete
        self.error = error
        self.delay = delay
        self.callback = None
        self.payload = None
        self.pending = False
        self.waits = 0

    def set_callback(self, callback):
        self.callback = callback

    def start_async(self):
        self.pending = True
        if self.delay is not None:
            threading.Timer(self.delay, self.complete).start()
        elif self.auto_complete:
            self.complete()

    def complete(self):
        self.pending = False
        self.callback(self.error)

    def wait(self):
        self.waits += 1
        if self.pending:
            self.complete()

    def get_tensor(self, name):
        return (name, self.payload)


class FakeModel:
    outputs_names = ["out"]

    def __init__(self):
        self.loaded = None

    def on_load_completed(self, requests):
        self.loaded = list(requests)

    def preprocess(self, input_data, request):
        request.payload = input_data.input_image
        return InternalImageModelData(4, 3)

    def postprocess(self, inference_result):
        return ImageResult(result_image=inference_result.first_output())


class FailingModel(FakeModel):
    outputs_names = ["missing"]

    def preprocess(self, input_data, request):
        return None


class RaisingRequest(FakeRequest):
    def get_tensor(self, name):
        raise KeyError(name)


def test_requires_requests():
    with pytest.raises(ValueError):
        AsyncPipeline(FakeModel(), [])


def test_on_load_completed_gets_all_requests():
    model = FakeModel()
    requests = [FakeRequest(), FakeRequest()]
    AsyncPipeline(model, requests)
    assert len(model.loaded) == len(requests)
    assert all(a is b for a, b in zip(model.loaded, requests))


def test_submit_and_get_result_round_trip():
    pipeline = AsyncPipeline(FakeModel(), [FakeRequest()])
    meta = ImageMetaData(img="frame", time_stamp=1.5)
    frame_id = pipeline.submit_data(ImageInputData("image-a"), meta)
    assert frame_id == 0
    result = pipeline.get_result()
    assert isinstance(result, ImageResult)
    assert result.frame_id == frame_id
    assert result.meta_data is meta
    assert result.result_image == ("out", "image-a")


def test_frame_ids_are_sequential():
    pipeline = AsyncPipeline(FakeModel(), [FakeRequest()])
    ids = []
    for image in ["a", "b", "c"]:
        ids.append(pipeline.submit_data(ImageInputData(image)))
        pipeline.get_result()
    assert ids == [0, 1, 2]


def test_submit_returns_minus_one_when_all_busy():
    pipeline = AsyncPipeline(FakeModel(), [FakeRequest(auto_complete=False)])
    assert pipeline.submit_data(ImageInputData("a")) == 0
    assert pipeline.is_ready_to_process() is False
    assert pipeline.submit_data(ImageInputData("b")) == -1


def test_get_result_with_nothing_ready_is_none():
    pipeline = AsyncPipeline(FakeModel(), [FakeRequest(auto_complete=False)])
    pipeline.submit_data(ImageInputData("a"))
    assert pipeline.get_result() is None
    assert pipeline.get_result(keep_order=False) is None


def test_keep_order_waits_for_next_frame():
    requests = [FakeRequest(auto_complete=False), FakeRequest(auto_complete=False)]
    pipeline = AsyncPipeline(FakeModel(), requests)
    pipeline.submit_data(ImageInputData("first"))
    pipeline.submit_data(ImageInputData("second"))
    requests[1].complete()
    assert pipeline.get_result(keep_order=True) is None
    requests[0].complete()
    first = pipeline.get_result(keep_order=True)
    second = pipeline.get_result(keep_order=True)
    assert (first.frame_id, second.frame_id) == (0, 1)
    assert second.result_image == ("out", "second")


def test_without_order_returns_any_ready_result():
    requests = [FakeRequest(auto_complete=False), FakeRequest(auto_complete=False)]
    pipeline = AsyncPipeline(FakeModel(), requests)
    pipeline.submit_data(ImageInputData("first"))
    pipeline.submit_data(ImageInputData("second"))
    requests[1].complete()
    result = pipeline.get_result(keep_order=False)
    assert result.frame_id == 1
    assert result.result_image == ("out", "second")


def test_completed_request_becomes_idle_again():
    requests = [FakeRequest(auto_complete=False)]
    pipeline = AsyncPipeline(FakeModel(), requests)
    pipeline.submit_data(ImageInputData("a"))
    requests[0].complete()
    assert pipeline.is_ready_to_process() is True


def test_wait_for_data_returns_when_idle_request_available():
    pipeline = AsyncPipeline(FakeModel(), [FakeRequest(auto_complete=False), FakeRequest()])
    pipeline.submit_data(ImageInputData("a"))
    pipeline.wait_for_data()
    assert pipeline.is_ready_to_process() is True


def test_wait_for_data_blocks_until_completion():
    pipeline = AsyncPipeline(FakeModel(), [FakeRequest(delay=0.05)])
    pipeline.submit_data(ImageInputData("late"))
    pipeline.wait_for_data(keep_order=True)
    result = pipeline.get_result()
    assert result.result_image == ("out", "late")


def test_request_error_is_raised_by_wait_for_data():
    error = RuntimeError("device lost")
    pipeline = AsyncPipeline(FakeModel(), [FakeRequest(error=error)])
    pipeline.submit_data(ImageInputData("a"))
    with pytest.raises(RuntimeError) as info:
        pipeline.wait_for_data()
    assert info.value is error


def test_error_while_collecting_outputs_is_raised_by_wait_for_data():
    pipeline = AsyncPipeline(FailingModel(), [RaisingRequest()])
    pipeline.submit_data(ImageInputData("a"))
    with pytest.raises(KeyError):
        pipeline.wait_for_data(keep_order=False)


def test_context_manager_waits_for_pending_requests():
    requests = [FakeRequest(auto_complete=False)]
    with AsyncPipeline(FakeModel(), requests) as pipeline:
        pipeline.submit_data(ImageInputData("a"))
    assert requests[0].waits == 1
    assert requests[0].pending is False
    result = pipeline.get_result()
    assert result.result_image == ("out", "a")