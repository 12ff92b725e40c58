"""Tests for the memory-staged parallel DFT on the host backend."""

import numpy as np
import pytest

try:
    from dftkit import DFTCompute, DeviceOutOfMemoryError, calculate_dft
    from dftkit.backend.base import ACCUMULATOR_BYTES, SAMPLE_BYTES
    from dftkit.backend.staging import single_pass_bytes
except ImportError:
    pytest.skip("dftkit not available", allow_module_level=True)


def _budget_for_chunk(num: int, chunk: int) -> int:
    """Smallest budget whose planned chunk size is ``chunk``."""
    return num * ACCUMULATOR_BYTES + chunk * SAMPLE_BYTES


class TestStagedResults:
    """Staged engine produces the same transform as the other engines."""

    @pytest.mark.parametrize("n", [1, 2, 15, 64, 100])
    def test_matches_reference(self, cpu_backend, make_signal, n):
        """Agrees with the reference engine for every bin."""
        x = make_signal(n)
        np.testing.assert_allclose(
            cpu_backend.dft_staged(x, chunk_size=7), calculate_dft(x), rtol=1e-4, atol=1e-4
        )

    def test_chunk_size_one_equals_largest_chunk(self, cpu_backend, make_signal):
        """The result does not depend on how many chunks were used."""
        x = make_signal(48)
        tiny = cpu_backend.dft_staged(x, chunk_size=1)
        whole = cpu_backend.dft_staged(x)
        np.testing.assert_array_equal(tiny, whole)

    @pytest.mark.parametrize("chunk", [1, 2, 5, 16, 47])
    def test_equals_single_pass(self, cpu_backend, make_signal, chunk):
        """Resuming each bin's running sum makes staging bit-identical to one pass."""
        x = make_signal(47)
        staged = cpu_backend.dft_staged(x, chunk_size=chunk)
        np.testing.assert_array_equal(staged, cpu_backend.dft_parallel(x))

    def test_empty_input(self, cpu_backend):
        """num == 0 yields an empty output."""
        out = cpu_backend.dft_staged(np.zeros(0, dtype=np.complex64))
        assert out.shape == (0,)
        assert cpu_backend.get_stats()["uploads"] == 0

    def test_single_sample(self, cpu_backend):
        """A single sample transforms to itself."""
        x = np.array([1.125 + 0.5j], dtype=np.complex64)
        assert cpu_backend.dft_staged(x, chunk_size=1)[0] == x[0]

    def test_all_ones(self, cpu_backend):
        """All-ones input gives num in bin 0 and zeros elsewhere."""
        out = cpu_backend.dft_staged(np.ones(36, dtype=np.complex64), chunk_size=5)
        assert out[0] == np.complex64(36)
        np.testing.assert_allclose(out[1:], 0, atol=1e-5)

    def test_unit_impulse(self, cpu_backend):
        """Unit impulse gives 1+0i in every bin."""
        x = np.zeros(19, dtype=np.complex64)
        x[0] = 1
        out = cpu_backend.dft_staged(x, chunk_size=4)
        np.testing.assert_array_equal(out, np.ones(19, dtype=np.complex64))

    def test_inverse(self, cpu_backend, make_signal):
        """inverse=True undoes the forward transform."""
        x = make_signal(33)
        spectrum = cpu_backend.dft_staged(x, chunk_size=8)
        np.testing.assert_allclose(
            cpu_backend.dft_staged(spectrum, inverse=True, chunk_size=8), x, atol=1e-4
        )


class TestStagedMemory:
    """Bounded-memory behaviour of the staging controller."""

    def test_handles_input_the_parallel_engine_rejects(self, make_signal):
        """A budget too small for one pass still yields the full transform."""
        n = 64
        x = make_signal(n)
        budget = _budget_for_chunk(n, 9)
        assert budget < single_pass_bytes(n)
        with DFTCompute(device="cpu", memory_budget=budget) as backend:
            with pytest.raises(DeviceOutOfMemoryError):
                backend.dft_parallel(x)
            out = backend.dft_staged(x)
            stats = backend.get_stats()
        np.testing.assert_allclose(out, calculate_dft(x), rtol=1e-4, atol=1e-4)
        # ceil(64 / 9) chunks, each a real/imag upload pair
        assert stats["launches"] == 8
        assert stats["uploads"] == 16

    def test_peak_stays_within_budget(self, make_signal):
        """The accumulator plus one chunk never exceed the budget."""
        n = 50
        budget = _budget_for_chunk(n, 6) + SAMPLE_BYTES - 1
        with DFTCompute(device="cpu", memory_budget=budget) as backend:
            backend.dft_staged(make_signal(n))
            stats = backend.get_stats()
        assert stats["peak_bytes"] <= budget
        assert stats["peak_bytes"] == _budget_for_chunk(n, 6)
        assert stats["bytes_in_use"] == 0

    def test_forced_chunk_size_below_viable(self, make_signal):
        """A forced chunk size smaller than the viable one is honoured."""
        with DFTCompute(device="cpu", memory_budget=_budget_for_chunk(20, 10)) as backend:
            backend.dft_staged(make_signal(20), chunk_size=3)
            assert backend.get_stats()["launches"] == 7

    def test_forced_chunk_size_capped_by_budget(self, make_signal):
        """A forced chunk size larger than what fits is reduced."""
        with DFTCompute(device="cpu", memory_budget=_budget_for_chunk(20, 10)) as backend:
            backend.dft_staged(make_signal(20), chunk_size=15)
            assert backend.get_stats()["launches"] == 2

    def test_no_viable_chunk_raises(self, make_signal):
        """If not even one sample fits beside the accumulator, fail with OOM."""
        n = 16
        with DFTCompute(device="cpu", memory_budget=_budget_for_chunk(n, 1) - 1) as backend:
            with pytest.raises(DeviceOutOfMemoryError):
                backend.dft_staged(make_signal(n))
            assert backend.get_stats()["bytes_in_use"] == 0

    def test_minimal_budget_uses_one_sample_chunks(self, make_signal):
        """The smallest viable budget stages one sample per pass."""
        n = 12
        x = make_signal(n)
        with DFTCompute(device="cpu", memory_budget=_budget_for_chunk(n, 1)) as backend:
            out = backend.dft_staged(x)
            assert backend.get_stats()["launches"] == n
        np.testing.assert_allclose(out, calculate_dft(x), rtol=1e-4, atol=1e-4)

    @pytest.mark.parametrize("chunk_size", [0, -3, 2.5, 2.0, "2", True])
    def test_invalid_chunk_size(self, cpu_backend, make_signal, chunk_size):
        """chunk_size must be an integer of at least 1."""
        with pytest.raises(ValueError, match="chunk_size"):
            cpu_backend.dft_staged(make_signal(5), chunk_size=chunk_size)
        assert cpu_backend.get_stats()["launches"] == 0

    def test_numpy_integer_chunk_size(self, cpu_backend, make_signal):
        """numpy integers are accepted as chunk sizes."""
        x = make_signal(9)
        out = cpu_backend.dft_staged(x, chunk_size=np.int64(4))
        assert cpu_backend.get_stats()["launches"] == 3
        np.testing.assert_allclose(out, calculate_dft(x), rtol=1e-4, atol=1e-4)


class TestStagedFailure:
    """Failures mid-call release resources and never publish partial output."""

    def test_launch_failure_propagates(self, cpu_backend, make_signal, monkeypatch):
        """A failing pass surfaces the error, frees buffers and leaves output untouched."""
        core = cpu_backend.core
        original = core.launch_dft_pass
        calls = {"n": 0}

        def failing_launch(*args, **kwargs):
            calls["n"] += 1
            if calls["n"] == 3:
                raise RuntimeError("simulated device fault")
            return original(*args, **kwargs)

        monkeypatch.setattr(core, "launch_dft_pass", failing_launch)

        sentinel = np.full(20, 7 + 7j, dtype=np.complex64)
        out = sentinel.copy()
        with pytest.raises(RuntimeError, match="simulated device fault"):
            cpu_backend.dft_staged(make_signal(20), out, chunk_size=4)

        np.testing.assert_array_equal(out, sentinel)
        assert cpu_backend.get_stats()["bytes_in_use"] == 0
        assert calls["n"] == 3
