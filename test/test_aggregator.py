import unittest

import pandas as pd

from rustasim_analysis.aggregator import aggregate, event_counts, quantile, stats_to_frame
from rustasim_analysis.errors import EmptyGroupError


class TestQuantile(unittest.TestCase):

    def test_type7(self):
        values = list(range(1, 11))
        self.assertEqual(quantile(values, 0.5), 5.5)
        self.assertEqual(quantile(values, 0.9), 9.1)
        self.assertAlmostEqual(quantile(values, 0.99), 9.91, places=12)

    def test_single_value(self):
        self.assertEqual(quantile([7], 0.99), 7.0)


class TestAggregate(unittest.TestCase):

    def flows(self):
        return pd.DataFrame({
            'size_byte': [200, 100, 200, 100, 200],
            'fct_ns': [30, 10, 40, 20, 50],
        })

    def test_median_per_size(self):
        stats = aggregate(self.flows(), 'size_byte')
        self.assertEqual([s.key for s in stats], [(100,), (200,)])
        self.assertEqual(stats[0].median, 15.0)
        self.assertEqual(stats[1].median, 40.0)
        self.assertAlmostEqual(stats[1].p90, 48.0)
        self.assertAlmostEqual(stats[1].p99, 49.8)

    def test_known_group(self):
        table = pd.DataFrame({'size_byte': [1] * 10, 'fct_ns': range(1, 11)})
        [stat] = aggregate(table, ['size_byte'], metrics=('count', 'median', 'p90'))
        self.assertEqual(stat.count, 10)
        self.assertEqual(stat.median, 5.5)
        self.assertEqual(stat["p90"], 9.1)

    def test_to_dict(self):
        stats = aggregate(self.flows(), 'size_byte', metrics=('count', 'median'))
        self.assertEqual(stats[0].to_dict(), {'size_byte': 100, 'count': 2, 'median': 15.0})
        self.assertIsInstance(stats[0].to_dict()['size_byte'], int)
        frame = stats_to_frame(stats)
        self.assertEqual(list(frame.columns), ['size_byte', 'count', 'median'])

    def test_multiple_keys_sorted(self):
        table = pd.DataFrame({
            'size_byte': [200, 100, 100],
            'src': [1, 2, 1],
            'fct_ns': [1.0, 2.0, 3.0],
        })
        stats = aggregate(table, ['size_byte', 'src'], metrics=('count',))
        self.assertEqual([s.key for s in stats], [(100, 1), (100, 2), (200, 1)])

    def test_empty_table(self):
        with self.assertRaises(EmptyGroupError):
            aggregate(self.flows().iloc[0:0], 'size_byte')

    def test_unknown_metric(self):
        with self.assertRaises(ValueError):
            aggregate(self.flows(), 'size_byte', metrics=('p150',))
        with self.assertRaises(ValueError):
            aggregate(self.flows(), 'size_byte', metrics=('mode',))

    def test_missing_column(self):
        with self.assertRaises(KeyError):
            aggregate(self.flows(), 'size_byte', value_column='fct_ms')

    def test_fractional_percentile(self):
        [stat] = aggregate(pd.DataFrame({'k': [1] * 3, 'fct_ns': [0, 10, 20]}), 'k', metrics=('p12.5',))
        self.assertAlmostEqual(stat['p12.5'], 2.5)


class TestEventCounts(unittest.TestCase):

    def test_unobserved_levels_skipped(self):
        table = pd.DataFrame({
            'type': ['Null', 'Null', 'ModelEvent(Packet)'],
            'id': pd.Categorical([1, 1, 2], categories=[1, 2, 3]),
            'sim_time': [1.0, 2.0, 3.0],
        })
        counts = event_counts(table)
        self.assertEqual([(c.key, c.count) for c in counts],
                         [(('ModelEvent(Packet)', 2), 1), (('Null', 1), 2)])
