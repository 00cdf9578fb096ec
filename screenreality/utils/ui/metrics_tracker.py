import time


class FpsTracker:
    """
    Frames per second over a sampling window, EMA-smoothed across windows.

    Call update() exactly once per rendered frame.
    """
    def __init__(self, sample_period_sec: float = 0.5, ema_alpha: float = 0.3, clock=time.perf_counter):
        self.sample_period_sec = float(sample_period_sec)
        self.ema_alpha = float(ema_alpha)
        self._clock = clock

        self._t0 = self._clock()
        self._frames = 0
        self.fps = 0.0

    def update(self) -> float:
        now = self._clock()
        self._frames += 1

        elapsed = now - self._t0
        if elapsed >= self.sample_period_sec:
            sample = self._frames / elapsed
            if self.fps == 0.0:
                self.fps = sample
            else:
                self.fps = self.ema_alpha * sample + (1.0 - self.ema_alpha) * self.fps
            self._t0 = now
            self._frames = 0

        return self.fps
