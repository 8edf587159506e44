import numpy as np
import pytest

from core import ScopeFrame, TriggerPoint
from shared.models import (
    ADC_MAX_CODE,
    AcquisitionMode,
    AcquisitionState,
    ChannelSelection,
    CoherentResult,
    FrameSource,
    RawFrame,
    ScaleState,
)


def _frame(**overrides):
    kwargs = dict(
        seq=1,
        mode=AcquisitionMode.CONTINUOUS,
        source=FrameSource.TRIGGERED,
        channels=(3, 2),
        buffers=(np.arange(10, dtype=np.float64), np.ones(10)),
        valid_counts=(10, 4),
    )
    kwargs.update(overrides)
    return ScopeFrame(**kwargs)


def test_raw_frame_codes_are_uint16_and_readonly():
    codes = np.array([0, 2048, ADC_MAX_CODE], dtype=np.int64)
    frame = RawFrame(codes, elapsed_s=3e-5, channel=5)

    assert frame.samples.dtype == np.uint16
    assert frame.n_samples == 3
    assert frame.sample_rate_hz == pytest.approx(100_000.0)
    assert not frame.samples.flags.writeable

    codes[0] = 99  # mutate the source array; frame should remain unchanged
    assert frame.samples[0] == 0
    with pytest.raises(ValueError):
        frame.samples[0] = 1


@pytest.mark.parametrize("codes", [[-1, 0], [0, ADC_MAX_CODE + 1]])
def test_raw_frame_rejects_out_of_range_codes(codes):
    with pytest.raises(ValueError):
        RawFrame(np.array(codes), elapsed_s=0.001)


def test_raw_frame_zero_elapsed_has_no_rate():
    assert RawFrame(np.zeros(4, dtype=np.uint16), elapsed_s=0.0).sample_rate_hz == 0.0


def test_coherent_result_validation():
    result = CoherentResult(np.full(2000, 2048), period_s=1e-3, frequency_hz=1000.0, cycles_averaged=100, channel=1)
    assert result.n_points == 2000
    with pytest.raises(ValueError):
        CoherentResult(np.zeros(4), period_s=1e-3, frequency_hz=1000.0, cycles_averaged=-1)
    with pytest.raises(ValueError):
        CoherentResult(np.zeros(4), period_s=1e-3, frequency_hz=1000.0, cycles_averaged=1, channel=8)


def test_channel_selection():
    assert ChannelSelection().channels == (3, 2)
    single = ChannelSelection(4, None)
    assert single.channels == (4,)
    assert not single.dual
    with pytest.raises(ValueError):
        ChannelSelection(8)
    with pytest.raises(ValueError):
        ChannelSelection(0, -1)


def test_trigger_point_fraction_bounds():
    assert not TriggerPoint().found
    with pytest.raises(ValueError):
        TriggerPoint(index=3, fraction=1.0)
    with pytest.raises(ValueError):
        TriggerPoint(index=-1)


def test_scale_state_offsets():
    scale = ScaleState(dc_offset=1.5, dc_offset2=1.2, scale_min=-0.9, scale_max=0.9)
    assert scale.span == pytest.approx(1.8)
    assert scale.offset_for(0) == 1.5
    assert scale.offset_for(1) == 1.2


def test_state_running_flag():
    assert not AcquisitionState.STOPPED.running
    assert all(s.running for s in AcquisitionState if s is not AcquisitionState.STOPPED)


def test_scope_frame_buffers_are_frozen_copies():
    source = np.arange(10, dtype=np.float64)
    frame = _frame(buffers=(source, np.ones(10)))
    source[0] = 42.0
    assert frame.buffers[0][0] == 0.0
    assert not frame.buffers[0].flags.writeable
    assert frame.dual and frame.n_channels == 2
    assert frame.valid(1).shape == (4,)
    with pytest.raises(ValueError):
        frame.valid(0)[0] = 1.0


def test_scope_frame_rejects_inconsistent_shapes():
    with pytest.raises(ValueError):
        _frame(valid_counts=(10,))
    with pytest.raises(ValueError):
        _frame(valid_counts=(11, 0))
    with pytest.raises(ValueError):
        _frame(channels=())
    with pytest.raises(ValueError):
        _frame(seq=-1)
