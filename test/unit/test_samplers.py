"""
Contract tests for the sampler base class, the shared sampler context and the
simulated MCP3208.
"""
from __future__ import annotations

import math

import numpy as np
import pytest

from daq.base_sampler import SampleError, SamplerUnavailableError
from daq.context import SamplerContext
from daq.simulated_sampler import FaultySampler, SimulatedSampler, WaveSpec
from core.voltage import to_voltage
from test.fixtures.controlled_sampler import ControlledSampler


class TestBaseSamplerContract:
    def test_capture_before_open_raises(self):
        sampler = SimulatedSampler()
        with pytest.raises(SamplerUnavailableError, match="not initialized"):
            sampler.capture_raw(0, 10)

    def test_capture_after_close_raises(self):
        sampler = SimulatedSampler()
        sampler.open()
        sampler.close()
        with pytest.raises(SamplerUnavailableError):
            sampler.capture_raw_dual(0, 1, 10)

    @pytest.mark.parametrize("channel", [-1, 8])
    def test_invalid_channel(self, channel):
        sampler = SimulatedSampler()
        sampler.open()
        with pytest.raises(ValueError):
            sampler.capture_raw(channel, 10)

    def test_non_positive_count(self):
        sampler = SimulatedSampler()
        sampler.open()
        with pytest.raises(ValueError):
            sampler.capture_raw(0, 0)

    def test_double_open_is_an_error(self):
        sampler = SimulatedSampler()
        sampler.open()
        with pytest.raises(RuntimeError):
            sampler.open()

    def test_open_failure_is_reported_as_unavailable(self):
        sampler = ControlledSampler()
        sampler.fail_open = OSError("spidev missing")
        with pytest.raises(SamplerUnavailableError, match="spidev missing"):
            sampler.open()
        assert not sampler.is_open

    def test_coherent_unsupported_returns_none(self):
        sampler = ControlledSampler({0: np.zeros(10)})
        sampler.open()
        assert sampler.capture_coherent(0, 2000, 10_000) is None
        assert sampler.calls == []


class TestSamplerContext:
    def test_opens_on_first_handle_and_closes_on_last(self):
        created = []

        def factory():
            sampler = ControlledSampler()
            created.append(sampler)
            return sampler

        ctx = SamplerContext(factory)
        first = ctx.acquire()
        second = ctx.acquire()
        assert first is second
        assert ctx.handle_count == 2
        assert len(created) == 1 and first.is_open

        ctx.release()
        assert first.is_open
        ctx.release()
        assert not first.is_open
        assert ctx.handle_count == 0
        assert ctx.sampler is None

    def test_reacquire_creates_new_sampler(self):
        ctx = SamplerContext(ControlledSampler)
        first = ctx.acquire()
        ctx.release()
        second = ctx.acquire()
        assert second is not first
        ctx.release()

    def test_release_without_acquire(self):
        with pytest.raises(RuntimeError):
            SamplerContext(ControlledSampler).release()

    def test_factory_failure(self):
        def factory():
            raise OSError("no SPI bus")

        ctx = SamplerContext(factory)
        with pytest.raises(SamplerUnavailableError, match="no SPI bus"):
            ctx.acquire()
        assert ctx.handle_count == 0

    def test_session_releases_on_error(self):
        ctx = SamplerContext(ControlledSampler)
        with pytest.raises(KeyError):
            with ctx.session() as sampler:
                assert sampler.is_open
                raise KeyError("x")
        assert ctx.handle_count == 0


class TestSimulatedSampler:
    def test_sine_codes_and_timing(self):
        sampler = SimulatedSampler({3: WaveSpec(frequency_hz=1000.0, amplitude_v=0.75, offset_v=1.5)})
        sampler.open()
        frame = sampler.capture_raw(3, 10_000)
        assert frame.n_samples == 10_000
        assert frame.elapsed_s == pytest.approx(0.1)
        assert frame.sample_rate_hz == pytest.approx(100_000.0)
        volts = to_voltage(frame.samples)
        assert volts.max() == pytest.approx(2.25, abs=2e-3)
        assert volts.min() == pytest.approx(0.75, abs=2e-3)

    def test_phase_continues_across_captures(self):
        wave = WaveSpec(frequency_hz=1000.0, amplitude_v=1.0, offset_v=1.5)
        sampler = SimulatedSampler({0: wave})
        sampler.open()
        first = sampler.capture_raw(0, 25)
        second = sampler.capture_raw(0, 25)
        # 25 samples is a quarter period: the second capture starts at the peak
        assert to_voltage(first.samples[0]) == pytest.approx(1.5, abs=2e-3)
        assert to_voltage(second.samples[0]) == pytest.approx(2.5, abs=2e-3)

    def test_unconnected_channel_reads_ground(self):
        sampler = SimulatedSampler()
        sampler.open()
        assert not np.any(sampler.capture_raw(5, 100).samples)

    def test_dual_samples_share_instants(self):
        sampler = SimulatedSampler(
            {
                3: WaveSpec(frequency_hz=1000.0),
                2: WaveSpec(frequency_hz=1000.0, phase_rad=math.pi / 2),
            }
        )
        sampler.open()
        a, b = sampler.capture_raw_dual(3, 2, 100)
        assert a.channel == 3 and b.channel == 2
        assert a.elapsed_s == b.elapsed_s
        va = to_voltage(a.samples) - 1.65
        vb = to_voltage(b.samples) - 1.65
        radius = np.hypot(va, vb)
        assert np.allclose(radius, 0.75, atol=3e-3)

    def test_coherent_average(self):
        sampler = SimulatedSampler({1: WaveSpec(frequency_hz=1000.0)}, noise_v=0.01, seed=4)
        sampler.open()
        result = sampler.capture_coherent(1, 2000, 10_000)
        assert result is not None
        assert result.n_points == 2000
        assert result.frequency_hz == pytest.approx(1000.0)
        assert result.cycles_averaged in (99, 100)
        assert result.period_s == pytest.approx(1e-3)

    def test_coherent_without_signal(self):
        sampler = SimulatedSampler()
        sampler.open()
        assert sampler.capture_coherent(1, 2000, 10_000) is None

    def test_coherent_needs_one_full_period(self):
        sampler = SimulatedSampler({1: WaveSpec(frequency_hz=5.0)})
        sampler.open()
        assert sampler.capture_coherent(1, 2000, 10_000) is None

    def test_coherent_disabled(self):
        sampler = SimulatedSampler({1: WaveSpec()}, coherent=False)
        sampler.open()
        assert sampler.capture_coherent(1, 2000, 10_000) is None

    def test_seeded_noise_is_reproducible(self):
        def capture():
            sampler = SimulatedSampler({0: WaveSpec()}, noise_v=0.05, seed=11)
            sampler.open()
            return sampler.capture_raw(0, 500).samples

        assert np.array_equal(capture(), capture())

    def test_wave_validation(self):
        with pytest.raises(ValueError):
            WaveSpec(shape="sawtooth")
        with pytest.raises(ValueError):
            WaveSpec(amplitude_v=-1.0)

    def test_faulty_sampler_recovers(self):
        sampler = FaultySampler({0: WaveSpec()}, failures=2)
        sampler.open()
        for _ in range(2):
            with pytest.raises(SampleError):
                sampler.capture_raw(0, 10)
        assert sampler.capture_raw(0, 10).n_samples == 10
