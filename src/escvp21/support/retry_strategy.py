from escvp21.support.mixins import CommonEqualityMixin


class RetryStrategy:
    """
    A policy that determines how long to wait before the next retry.
    Each call returns the next delay in seconds. reset() returns the policy to its initial state.
    """
    def __call__(self):
        return 0

    def reset(self):
        pass

    @property
    def attempts(self):
        return 0


class ExponentialRetryStrategy(RetryStrategy, CommonEqualityMixin):

    def __init__(self, initial_delay=0.1, max_delay=60, factor=2):
        """
        :param initial_delay: The first delay returned, in seconds.
        :param max_delay: The delay is never larger than this, in seconds.
        :param factor: The growth of the delay from one call to the next.
        """
        if initial_delay <= 0 or max_delay < initial_delay:
            raise ValueError("invalid delay range %s-%s" % (initial_delay, max_delay))
        if factor < 1:
            raise ValueError("factor must be at least 1, got %s" % factor)
        self.initial_delay = initial_delay
        self.max_delay = max_delay
        self.factor = factor
        self._attempts = 0

    def __call__(self):
        """ returns the delay for the next attempt and advances the attempt count """
        delay = self.delay_for(self._attempts)
        self._attempts += 1
        return delay

    def delay_for(self, attempt):
        """
        The delay before the given (zero based) attempt, without changing the state of this strategy.
        """
        # cap the exponent too, a device absent for days should not overflow the float
        exponent = min(attempt, 64)
        return min(self.max_delay, self.initial_delay * (self.factor ** exponent))

    def reset(self):
        self._attempts = 0

    @property
    def attempts(self):
        return self._attempts
