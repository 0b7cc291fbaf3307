import statistics

import pytest

from worldtick.engine.rng import Mulberry32, normal_approx, tick_seed


def test_same_seed_same_stream():
    a = Mulberry32(42)
    b = Mulberry32(42)
    assert [a() for _ in range(100)] == [b() for _ in range(100)]


def test_different_seeds_diverge():
    a = Mulberry32(1)
    b = Mulberry32(2)
    assert [a() for _ in range(10)] != [b() for _ in range(10)]


def test_draws_are_in_unit_interval():
    rng = Mulberry32(0xDEADBEEF)
    for _ in range(10_000):
        value = rng()
        assert 0.0 <= value < 1.0


def test_tick_seed_is_xor_masked_to_32_bits():
    assert tick_seed(123, 0) == 123
    assert tick_seed(123, 5) == 123 ^ 5
    assert tick_seed(-1, 0) == 0xFFFFFFFF
    assert tick_seed(2**32 + 7, 0) == 7


def test_normal_approx_consumes_fixed_number_of_draws():
    rng = Mulberry32(9)
    normal_approx(rng, 0, 1)
    assert rng.draws == 12


def test_normal_approx_matches_moments():
    rng = Mulberry32(2024)
    samples = [normal_approx(rng, 5.0, 2.0) for _ in range(20_000)]
    assert statistics.fmean(samples) == pytest.approx(5.0, abs=0.05)
    assert statistics.pstdev(samples) == pytest.approx(2.0, abs=0.05)
    # Sum of 12 uniforms is bounded at 6 standard deviations.
    assert all(-7.0 <= s <= 17.0 for s in samples)
