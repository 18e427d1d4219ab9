"""Tests for RateLimiter and its counter stores."""

import pytest

from aceprops.errors import RateLimitedError
from aceprops.services import InMemoryCounterStore, RateLimiter, SupabaseCounterStore


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


class FakeRpcClient:
    def __init__(self, result):
        self.result = result
        self.calls: list[tuple[str, dict]] = []

    def execute_rpc(self, function_name: str, params: dict):
        self.calls.append((function_name, params))
        return self.result


class TestInMemoryCounterStore:
    def test_counts_within_window(self) -> None:
        store = InMemoryCounterStore(clock=FakeClock())
        assert [store.hit("k", 60) for _ in range(3)] == [1, 2, 3]

    def test_window_resets(self) -> None:
        clock = FakeClock()
        store = InMemoryCounterStore(clock=clock)
        store.hit("k", 60)
        store.hit("k", 60)
        clock.now += 60
        assert store.hit("k", 60) == 1

    def test_keys_are_independent(self) -> None:
        store = InMemoryCounterStore(clock=FakeClock())
        store.hit("a", 60)
        assert store.hit("b", 60) == 1


class TestSupabaseCounterStore:
    @pytest.mark.parametrize("result", [3, [{"count": 3}], {"count": 3}, [3]])
    def test_reads_rpc_result(self, result) -> None:
        client = FakeRpcClient(result)
        store = SupabaseCounterStore(client=client)
        assert store.hit("1.2.3.4:/viewings/request", 60) == 3
        assert client.calls == [
            ("rate_limit_hit", {"p_key": "1.2.3.4:/viewings/request", "p_window_seconds": 60})
        ]

    def test_empty_result_counts_zero(self) -> None:
        store = SupabaseCounterStore(client=FakeRpcClient([]))
        assert store.hit("k", 60) == 0


class TestRateLimiter:
    def test_blocks_after_max(self) -> None:
        limiter = RateLimiter(
            InMemoryCounterStore(clock=FakeClock()), max_requests=2, window_seconds=60
        )
        limiter.check("ip:/path")
        limiter.check("ip:/path")
        with pytest.raises(RateLimitedError) as exc:
            limiter.check("ip:/path")
        assert exc.value.status == 429

    def test_uses_settings_defaults(self, settings) -> None:
        limiter = RateLimiter(settings=settings)
        assert limiter.max_requests == 10
        assert limiter.window_seconds == 60

    def test_key_for(self) -> None:
        assert RateLimiter.key_for("10.0.0.1", "/health") == "10.0.0.1:/health"
        assert RateLimiter.key_for(None, "/x") == "unknown:/x"
