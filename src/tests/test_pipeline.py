"""End-to-end tests of the Clear -> Trace -> Image chain and its event ordering."""

import numpy as np
import pytest

from clrays.render_server.taichi_tracer import (
    ClearKernel, EventList, ImageKernel, TraceAaKernel, TraceMode, TraceProcessor,
)
from clrays.render_server.taichi_tracer.display import pack_rgb

from conftest import SKY


def _build(program, scene, width, height, aa):
    trace = TraceAaKernel(program, scene, width, height, aa)
    clear = ClearKernel(program, trace.get_buffer(), width, height)
    image = ImageKernel(program, trace.get_buffer(), width, height)
    return clear, trace, image


def test_empty_scene_renders_sky(program, empty_scene):
    """4x4, aa=2, no objects: every pixel is the sky color."""
    clear, trace, image = _build(program, empty_scene, 4, 4, 2)
    events = EventList()

    clear.execute(events)
    trace.execute(events)
    image.execute(events)

    np.testing.assert_allclose(trace.get_result(), np.tile(SKY, 16), rtol=1e-6)
    np.testing.assert_array_equal(image.get_result(), np.full(16, pack_rgb(SKY)))


@pytest.mark.parametrize("aa", [1, 2, 3, 4])
def test_sky_survives_any_supersampling(program, empty_scene, aa):
    clear, trace, image = _build(program, empty_scene, 4, 4, aa)
    events = EventList()

    clear.execute(events)
    trace.execute(events)
    image.execute(events)

    np.testing.assert_allclose(trace.get_result(), np.tile(SKY, 16), rtol=1e-6)
    np.testing.assert_array_equal(image.get_result(), np.full(16, pack_rgb(SKY)))


def test_image_never_sees_pre_clear_content(program, empty_scene):
    clear, trace, image = _build(program, empty_scene, 4, 4, 2)
    trace.get_buffer().upload(np.full(4 * 4 * 3, 5.0))
    events = EventList()

    clear.execute(events)
    trace.execute(events)
    image.execute(events)
    pixels = image.get_result()

    assert pack_rgb((5.0, 5.0, 5.0)) == 0xFFFFFF
    np.testing.assert_array_equal(pixels, np.full(16, pack_rgb(SKY)))
    np.testing.assert_allclose(trace.get_result(), np.tile(SKY, 16), rtol=1e-6)


def test_events_record_dispatch_order(program, empty_scene):
    clear, trace, image = _build(program, empty_scene, 4, 4, 1)
    events = EventList()

    clear.execute(events)
    trace.execute(events)
    image.execute(events)

    assert [e.label for e in events] == ['clear', 'render', 'image_from_floatmap']
    sequences = [e.sequence for e in events]
    assert sequences == sorted(sequences)
    assert not events.last.is_complete

    image.get_result()
    assert all(e.is_complete for e in events)


def test_image_handoff_skips_trace_transfer(program, empty_scene):
    """Image binds the trace buffer directly; no host round trip for the intermediate."""
    clear, trace, image = _build(program, empty_scene, 4, 4, 1)
    events = EventList()

    clear.execute(events)
    trace.execute(events)
    image.execute(events)
    image.get_result()

    assert trace.get_buffer().transfer_count == 0
    assert image.get_buffer().transfer_count == 1


def test_processor_renders_sky(empty_scene):
    processor = TraceProcessor(4, 4, 2, empty_scene)

    pixels = processor.render()

    assert pixels.shape == (16,)
    np.testing.assert_array_equal(pixels, np.full(16, pack_rgb(SKY)))
    assert len(processor.frame_times) == 1


def test_processor_frames_do_not_accumulate(empty_scene):
    processor = TraceProcessor(4, 4, 2, empty_scene)

    first = processor.render().copy()
    second = processor.render()

    np.testing.assert_array_equal(first, second)
    np.testing.assert_allclose(processor.trace_kernel.get_result(), np.tile(SKY, 16), rtol=1e-6)


def test_processor_returns_stable_array(empty_scene):
    processor = TraceProcessor(2, 2, 1, empty_scene)

    assert processor.render() is processor.render()


def test_processor_kernel_order(empty_scene):
    processor = TraceProcessor(2, 2, 1, empty_scene)

    assert processor.kernels == [processor.clear_kernel, processor.trace_kernel, processor.image_kernel]
    assert processor.clear_kernel.get_buffer() is processor.trace_kernel.get_buffer()
    assert processor.image_kernel.source is processor.trace_kernel.get_buffer()


def test_processor_execute_shares_event_list(empty_scene):
    processor = TraceProcessor(2, 2, 1, empty_scene)
    events = EventList()

    returned = processor.execute(events)

    assert returned is events
    assert len(events) == 3


@pytest.mark.parametrize("width, height, aa", [(0, 4, 1), (4, -1, 1), (4, 4, 0)])
def test_processor_rejects_bad_parameters(empty_scene, width, height, aa):
    with pytest.raises(ValueError):
        TraceProcessor(width, height, aa, empty_scene)


def test_sphere_is_visible(sphere_scene):
    """Center pixels hit the lit sphere; corner pixels see the sky."""
    processor = TraceProcessor(8, 8, 1, sphere_scene)

    pixels = processor.render().reshape(8, 8)

    sky = pack_rgb(SKY)
    assert pixels[0, 0] == sky
    assert pixels[7, 7] == sky
    assert pixels[3, 3] != sky
    assert pixels[4, 4] != sky
    assert (pixels[3, 3] >> 16) & 0xFF > 0


def test_real_mode_single_kernel(empty_scene):
    processor = TraceProcessor(4, 4, 3, empty_scene, mode=TraceMode.REAL)

    pixels = processor.render()

    assert processor.kernels == [processor.trace_kernel]
    assert processor.clear_kernel is None and processor.image_kernel is None
    assert processor.aa == 1
    assert processor.trace_kernel.work == (4, 4)
    np.testing.assert_array_equal(pixels, np.full(16, pack_rgb(SKY)))
    assert len(processor.execute()) == 1


def test_real_mode_matches_single_sample_chain(sphere_scene):
    real = TraceProcessor(8, 8, 1, sphere_scene, mode='real')
    chain = TraceProcessor(8, 8, 1, sphere_scene, mode=TraceMode.AA)

    np.testing.assert_array_equal(real.render(), chain.render())


def test_unknown_mode_rejected(empty_scene):
    with pytest.raises(ValueError):
        TraceProcessor(4, 4, 1, empty_scene, mode='path')
