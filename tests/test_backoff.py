"""Tests for BackoffScheduler."""

from robust_socket.backoff import BackoffScheduler


class TestBackoffScheduler:
    """Tests for delay sequencing and reset."""

    def test_first_delay_is_immediate(self):
        """Test the first reconnection is not delayed."""
        backoff = BackoffScheduler(min_delay=1, max_delay=30, factor=1.5)
        assert backoff.next_delay() == 0
        assert backoff.reconnect_count == 1

    def test_exponential_sequence_capped_at_max(self):
        """Test delays grow by factor and stop at the maximum."""
        backoff = BackoffScheduler(min_delay=1, max_delay=9, factor=2)
        delays = [backoff.next_delay() for _ in range(8)]
        assert delays == [0, 1, 2, 4, 8, 9, 9, 9]

    def test_factor_below_one_respects_min_delay(self):
        """Test a shrinking factor never drops below the minimum."""
        backoff = BackoffScheduler(min_delay=2, max_delay=10, factor=0.5)
        delays = [backoff.next_delay() for _ in range(4)]
        assert delays == [0, 2, 2, 2]

    def test_reset_forgets_instability(self):
        """Test reset returns to an immediate first retry."""
        backoff = BackoffScheduler(min_delay=1, max_delay=9, factor=2)
        for _ in range(4):
            backoff.next_delay()

        backoff.reset()

        assert backoff.reconnect_count == 0
        assert backoff.next_retry_time == 0
        assert backoff.next_delay() == 0

    def test_unbounded_attempts_never_exhausted(self):
        """Test no attempt cap by default."""
        backoff = BackoffScheduler(min_delay=1, max_delay=2, factor=2)
        for _ in range(100):
            backoff.next_delay()
        assert not backoff.exhausted

    def test_exhausted_at_max_attempts(self):
        """Test the attempt cap is reached after max_attempts delays."""
        backoff = BackoffScheduler(min_delay=1, max_delay=9, factor=2, max_attempts=3)
        for _ in range(2):
            backoff.next_delay()
        assert not backoff.exhausted
        backoff.next_delay()
        assert backoff.exhausted

    def test_zero_max_attempts_is_exhausted_immediately(self):
        """Test a cap of zero allows no reconnection at all."""
        backoff = BackoffScheduler(min_delay=1, max_delay=9, factor=2, max_attempts=0)
        assert backoff.exhausted
