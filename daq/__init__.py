"""ADC sampler contract, shared sampler context and the simulated MCP3208."""

from .base_sampler import BaseSampler, SampleError, SamplerUnavailableError
from .context import SamplerContext

__all__ = ["BaseSampler", "SampleError", "SamplerUnavailableError", "SamplerContext"]
