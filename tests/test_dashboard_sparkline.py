import unittest

from dashboard.sparkline import SPARKLINE_MAXLEN, SparklineAccumulator, SparklineBuffer
from runtime.snapshot import SensorReadings


class SparklineBufferTests(unittest.TestCase):
    def test_keeps_last_maxlen_values(self):
        buffer = SparklineBuffer()
        for value in range(SPARKLINE_MAXLEN + 5):
            buffer.push(value)
        self.assertEqual(len(buffer), SPARKLINE_MAXLEN)
        self.assertEqual(buffer.values()[0], 5.0)
        self.assertEqual(buffer.values()[-1], float(SPARKLINE_MAXLEN + 4))

    def test_single_invalid_push_keeps_history(self):
        buffer = SparklineBuffer(maxlen=5)
        buffer.push(1)
        buffer.push(2)
        buffer.push(None)
        buffer.push("n/a")
        self.assertEqual(buffer.values(), (1.0, 2.0))
        self.assertEqual(buffer.invalid_count, 2)

    def test_third_consecutive_invalid_clears(self):
        buffer = SparklineBuffer(maxlen=5)
        buffer.push(1)
        for value in (None, float("nan"), float("inf")):
            buffer.push(value)
        self.assertEqual(buffer.values(), ())

        buffer.push(7)
        self.assertEqual(buffer.values(), (7.0,))
        self.assertEqual(buffer.invalid_count, 0)

    def test_valid_push_resets_invalid_streak(self):
        buffer = SparklineBuffer(maxlen=5)
        buffer.push(1)
        buffer.push(None)
        buffer.push(None)
        buffer.push(2)
        buffer.push(None)
        buffer.push(None)
        self.assertEqual(buffer.values(), (1.0, 2.0))


class SparklineAccumulatorTests(unittest.TestCase):
    def test_push_sensors_fills_each_channel(self):
        accumulator = SparklineAccumulator()
        accumulator.push_sensors(SensorReadings(temp_c=21.5, hum_rh=55, soil1=40, soil2=None))
        accumulator.push_sensors(SensorReadings(temp_c=21.7, hum_rh=56, soil1=41, soil2=38))

        snapshot = accumulator.snapshot()
        self.assertEqual(snapshot["temp"], (21.5, 21.7))
        self.assertEqual(snapshot["hum"], (55.0, 56.0))
        self.assertEqual(snapshot["s1"], (40.0, 41.0))
        self.assertEqual(snapshot["s2"], (38.0,))

    def test_unknown_channel_raises(self):
        with self.assertRaises(KeyError):
            SparklineAccumulator().push("co2", 400)


if __name__ == "__main__":
    unittest.main()
