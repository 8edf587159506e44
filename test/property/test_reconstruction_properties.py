"""
Property-based tests for the reconstruction pipeline using Hypothesis.

Invariants:
1. Cycle length is within one sample of the true period for clean sines
   and within a few samples under Gaussian noise at several sample rates
2. Vectorised cycle and trigger searches agree with naive loop references
3. Trigger fractions are always in [0, 1) and never NaN
4. Catmull-Rom reproduces the samples at integer positions
5. Autoscale contains the centred signal and is symmetric when AC-coupled
6. Buffer valid counts never exceed capacity
"""
from __future__ import annotations

import math

import numpy as np
from hypothesis import assume, given, settings, strategies as st

from core.buffers import ChannelBufferManager
from core.cycle import find_cycle_bounds
from core.resampler import catmull_rom, resample
from core.scaling import ScalingEngine
from core.trigger import find_trigger
from shared.models import ScaleState, TriggerConfig
from test.fixtures.reference_models import reference_cycle_bounds, reference_trigger
from test.fixtures.signal_generators import add_gaussian_noise, make_sine_volts

SAMPLE_RATE = 100_000.0

finite = st.floats(min_value=-2.0, max_value=2.0, allow_nan=False, allow_infinity=False, width=64)


class TestCycleProperties:
    @given(
        freq=st.floats(min_value=200.0, max_value=5000.0),
        amplitude=st.floats(min_value=0.05, max_value=1.5),
        phase=st.floats(min_value=0.0, max_value=2 * math.pi),
    )
    @settings(max_examples=100, deadline=None)
    def test_cycle_length_within_one_sample(self, freq, amplitude, phase):
        volts = make_sine_volts(freq, amplitude, 10_000, SAMPLE_RATE, offset=1.65, phase_rad=phase)
        bounds = find_cycle_bounds(volts - np.mean(volts))
        assert bounds is not None
        assert abs(bounds.length - SAMPLE_RATE / freq) <= 1.0

    @given(
        samples_per_period=st.sampled_from([20, 50, 100]),
        amplitude=st.floats(min_value=0.75, max_value=1.5),
        noise=st.floats(min_value=0.0, max_value=0.02),
        phase=st.floats(min_value=0.0, max_value=2 * math.pi),
        seed=st.integers(min_value=0, max_value=2**32 - 1),
    )
    @settings(max_examples=100, deadline=None)
    def test_noisy_cycle_length(self, samples_per_period, amplitude, noise, phase, seed):
        rate = 1000.0 * samples_per_period
        clean = make_sine_volts(1000.0, amplitude, 10_000, rate, offset=1.65, phase_rad=phase)
        volts = add_gaussian_noise(clean, noise, seed=seed)
        bounds = find_cycle_bounds(volts - np.mean(volts))
        assert bounds is not None
        # Noise near a crossing can move either end by a sample or two
        assert abs(bounds.length - samples_per_period) <= max(3, 0.05 * samples_per_period)

    @given(level=st.floats(min_value=0.0, max_value=3.3), n=st.integers(min_value=0, max_value=2000))
    @settings(max_examples=50, deadline=None)
    def test_constant_signal_has_no_cycle(self, level, n):
        volts = np.full(n, level)
        assert find_cycle_bounds(volts - (np.mean(volts) if n else 0.0)) is None

    @given(st.lists(finite, min_size=0, max_size=300))
    @settings(max_examples=200, deadline=None)
    def test_matches_reference(self, values):
        signal = np.asarray(values, dtype=np.float64)
        bounds = find_cycle_bounds(signal)
        expected = reference_cycle_bounds(signal)
        if expected is None:
            assert bounds is None
        else:
            assert bounds is not None
            assert (bounds.start, bounds.end) == expected


class TestTriggerProperties:
    @given(
        values=st.lists(finite, min_size=0, max_size=200),
        capacity=st.integers(min_value=1, max_value=150),
        level=st.floats(min_value=-1.0, max_value=1.0),
        rising=st.booleans(),
    )
    @settings(max_examples=200, deadline=None)
    def test_matches_reference_and_fraction_in_range(self, values, capacity, level, rising):
        data = np.asarray(values, dtype=np.float64)
        point = find_trigger(data, capacity, TriggerConfig(level=level, rising=rising))
        assert not math.isnan(point.fraction)
        assert 0.0 <= point.fraction < 1.0

        expected = reference_trigger(data, capacity, level, rising=rising)
        if expected is None:
            assert not point.found
            assert point.index == 0
            return
        index, fraction = expected
        assert point.found
        if fraction >= 1.0:
            assert (point.index, point.fraction) == (index + 1, 0.0)
        else:
            assert point.index == index
            assert math.isclose(point.fraction, fraction, abs_tol=1e-12)

    @given(
        freq=st.floats(min_value=500.0, max_value=3000.0),
        phase=st.floats(min_value=0.0, max_value=2 * math.pi),
        level=st.floats(min_value=-0.5, max_value=0.5),
    )
    @settings(max_examples=100, deadline=None)
    def test_window_always_fits(self, freq, phase, level):
        volts = make_sine_volts(freq, 0.75, 10_000, SAMPLE_RATE, offset=1.5, phase_rad=phase)
        point = find_trigger(volts, 6000, TriggerConfig(level=level), dc_offset=float(np.mean(volts)))
        assert point.found
        assert point.index + 6000 <= volts.size


class TestResamplerProperties:
    @given(st.lists(finite, min_size=1, max_size=60))
    @settings(max_examples=100, deadline=None)
    def test_catmull_rom_reproduces_samples(self, values):
        data = np.asarray(values, dtype=np.float64)
        out = catmull_rom(data, np.arange(data.size, dtype=np.float64))
        assert np.allclose(out, data, atol=1e-12)

    @given(
        values=st.lists(finite, min_size=2, max_size=400),
        width=st.floats(min_value=1.0, max_value=1000.0),
        fraction=st.floats(min_value=0.0, max_value=0.999),
    )
    @settings(max_examples=100, deadline=None)
    def test_normalised_output(self, values, width, fraction):
        data = np.asarray(values, dtype=np.float64)
        trace = resample(data, data.size, width, ScaleState(scale_min=-1.0, scale_max=1.0), fraction=fraction)
        assert trace.x.shape == trace.y.shape
        assert np.all((trace.y >= 0.0) & (trace.y <= 1.0))
        assert trace.peak_to_peak >= 0.0
        assert trace.x[0] <= 0.0


class TestScalingProperties:
    @given(
        amplitude=st.floats(min_value=0.01, max_value=1.6),
        offset=st.floats(min_value=0.0, max_value=3.3),
    )
    @settings(max_examples=100, deadline=None)
    def test_ac_autoscale_contains_centred_signal(self, amplitude, offset):
        volts = make_sine_volts(1000.0, amplitude, 1000, SAMPLE_RATE, offset=offset)
        state = ScalingEngine(ac_coupling=True, auto_scale=True).update([volts])
        centred = volts - state.dc_offset
        assert state.scale_min == -state.scale_max
        assert state.scale_min <= centred.min()
        assert state.scale_max >= centred.max()

    @given(
        amplitude=st.floats(min_value=0.01, max_value=1.6),
        offset=st.floats(min_value=0.0, max_value=3.3),
    )
    @settings(max_examples=100, deadline=None)
    def test_dc_autoscale_within_adc_range(self, amplitude, offset):
        volts = np.clip(make_sine_volts(1000.0, amplitude, 1000, SAMPLE_RATE, offset=offset), 0.0, 3.3)
        assume(np.ptp(volts) > 1e-6)
        state = ScalingEngine(ac_coupling=False, auto_scale=True).update([volts])
        assert 0.0 <= state.scale_min < state.scale_max <= 3.3
        assert state.scale_min <= volts.min() + 1e-12
        assert state.scale_max >= volts.max() - 1e-12


class TestBufferProperties:
    @given(
        n=st.integers(min_value=0, max_value=500),
        start=st.integers(min_value=0, max_value=600),
        capacity=st.integers(min_value=2, max_value=300),
    )
    @settings(max_examples=100, deadline=None)
    def test_window_valid_count_bounded(self, n, start, capacity):
        mgr = ChannelBufferManager(capacity=capacity)
        valid = mgr.fill_window(np.arange(n, dtype=np.float64), None, start)
        assert 0 <= valid <= capacity
        assert valid == max(0, min(capacity, n - start))

    @given(
        period=st.integers(min_value=1, max_value=3000),
        capacity=st.integers(min_value=2, max_value=6000),
    )
    @settings(max_examples=100, deadline=None)
    def test_coherent_valid_count(self, period, capacity):
        mgr = ChannelBufferManager(capacity=capacity)
        assert mgr.fill_coherent(np.ones(period), None) == min(capacity, period * 3)
