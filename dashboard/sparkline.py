"""Bounded rolling buffers behind the sensor sparklines."""

from collections import deque

from runtime.defaults import SPARKLINE_CHANNELS
from runtime.parsing import parse_finite_float


SPARKLINE_MAXLEN = 60
INVALID_CLEAR_THRESHOLD = 3

# Fixed display ranges used when drawing each channel.
SPARKLINE_DISPLAY_RANGES = {
    "temp": (0.0, 50.0),
    "hum": (0.0, 100.0),
    "s1": (0.0, 100.0),
    "s2": (0.0, 100.0),
}


class SparklineBuffer:
    """FIFO of the last valid samples; cleared after repeated invalid pushes."""

    def __init__(self, maxlen=SPARKLINE_MAXLEN, clear_after=INVALID_CLEAR_THRESHOLD):
        self._values = deque(maxlen=int(maxlen))
        self.clear_after = int(clear_after)
        self.invalid_count = 0

    def push(self, value):
        number = parse_finite_float(value)
        if number is None:
            self.invalid_count += 1
            if self.invalid_count >= self.clear_after:
                self._values.clear()
            return
        self.invalid_count = 0
        self._values.append(number)

    def values(self):
        return tuple(self._values)

    def __len__(self):
        return len(self._values)


class SparklineAccumulator:
    def __init__(self, channels=SPARKLINE_CHANNELS, maxlen=SPARKLINE_MAXLEN):
        self.buffers = {channel: SparklineBuffer(maxlen=maxlen) for channel in channels}

    def push(self, channel, value):
        self.buffers[channel].push(value)

    def push_sensors(self, sensors):
        """Push one SensorReadings into the temp/hum/s1/s2 buffers."""
        self.push("temp", sensors.temp_c)
        self.push("hum", sensors.hum_rh)
        self.push("s1", sensors.soil1)
        self.push("s2", sensors.soil2)

    def snapshot(self):
        return {channel: buffer.values() for channel, buffer in self.buffers.items()}
