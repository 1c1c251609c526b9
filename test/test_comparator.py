import unittest
import warnings

import numpy as np
import pandas as pd

from rustasim_analysis.comparator import (compare, fct_summary, geometric_mean, ideal_fct_ns, ratio_by_size,
                                          scale_by_link_rate, subtract_hop_overhead)
from rustasim_analysis.errors import EmptyGroupError, JoinMismatchWarning


def flows(rows):
    return pd.DataFrame(rows, columns=['src', 'dst', 'size_byte', 'start_us', 'fct_ns'])


class TestCompare(unittest.TestCase):

    def test_inner_join(self):
        experiment = flows([(1, 2, 100, 50.0, 200.0)])
        control = flows([(1, 2, 100, 50.0, 100.0), (3, 4, 200, 10.0, 300.0)])
        with self.assertWarns(JoinMismatchWarning):
            result = compare(experiment, control)
        self.assertEqual(result.matched, 1)
        self.assertEqual(result.unmatched_control, 1)
        self.assertEqual(result.unmatched_experiment, 0)
        self.assertAlmostEqual(result.match_rate, 0.5)

        [row] = result.rows
        self.assertEqual(row.key, {'src': 1, 'dst': 2, 'size_byte': 100, 'start_us': 50.0})
        self.assertEqual(row.size_byte, 100)
        self.assertEqual((row.experiment_fct, row.control_fct, row.ratio), (200.0, 100.0, 2.0))

    def test_full_match_does_not_warn(self):
        experiment = flows([(1, 2, 100, 50.0, 200.0)])
        control = flows([(1, 2, 100, 50.0, 100.0)])
        with warnings.catch_warnings():
            warnings.simplefilter('error', JoinMismatchWarning)
            result = compare(experiment, control)
        self.assertEqual(result.match_rate, 1.0)

    def test_start_time_mismatch(self):
        experiment = flows([(1, 2, 100, 51.0, 200.0)])
        control = flows([(1, 2, 100, 50.0, 100.0)])
        with self.assertWarns(JoinMismatchWarning):
            result = compare(experiment, control)
        self.assertEqual(result.rows, [])
        self.assertEqual((result.unmatched_experiment, result.unmatched_control), (1, 1))
        self.assertEqual(result.match_rate, 0.0)

    def test_adjustments(self):
        experiment = flows([(1, 2, 100, 50.0, 4000.0)])
        control = flows([(1, 2, 100, 50.0, 1500.0)])
        result = compare(experiment, control,
                         adjustment=scale_by_link_rate(1436, 1500),
                         experiment_adjustment=subtract_hop_overhead(4, 500))
        [row] = result.rows
        self.assertAlmostEqual(row.experiment_fct, 2000.0)
        self.assertAlmostEqual(row.control_fct, 1436.0)
        self.assertAlmostEqual(row.ratio, 2000.0 / 1436.0)
        self.assertEqual(control['fct_ns'].tolist(), [1500.0])
        self.assertEqual(experiment['fct_ns'].tolist(), [4000.0])

    def test_fct_from_control_start(self):
        experiment = flows([(1, 2, 100, 50.0, 999.0)])
        experiment['start'] = 50400.0
        experiment['end'] = 51000.0
        control = flows([(1, 2, 100, 50.0, 500.0)])
        control['start'] = 50000.0
        result = compare(experiment, control, fct_from_control_start=True)
        [row] = result.rows
        self.assertEqual(row.experiment_fct, 1000.0)
        self.assertEqual(row.ratio, 2.0)

    def test_control_start_required(self):
        experiment = flows([(1, 2, 100, 50.0, 999.0)])
        experiment['start'] = 50400.0
        experiment['end'] = 51000.0
        control = flows([(1, 2, 100, 50.0, 500.0)])
        with self.assertRaises(KeyError):
            compare(experiment, control, fct_from_control_start=True)

    def test_experiment_end_required(self):
        experiment = flows([(1, 2, 100, 50.0, 999.0)])
        experiment['start'] = 50400.0
        control = flows([(1, 2, 100, 50.0, 500.0)])
        control['start'] = 50000.0
        control['end'] = 50500.0
        with self.assertRaises(KeyError):
            compare(experiment, control, fct_from_control_start=True)

    def test_missing_key_column(self):
        with self.assertRaises(KeyError):
            compare(flows([]).drop(columns=['start_us']), flows([]))

    def test_to_frame(self):
        result = compare(flows([(1, 2, 100, 50.0, 200.0)]), flows([(1, 2, 100, 50.0, 100.0)]))
        frame = result.to_frame()
        self.assertEqual(list(frame.columns),
                         ['src', 'dst', 'size_byte', 'start_us', 'fct_experiment', 'fct_control', 'ratio'])
        self.assertEqual(frame['ratio'].tolist(), [2.0])


class TestRatioBySize(unittest.TestCase):

    def test_geometric_mean(self):
        self.assertAlmostEqual(geometric_mean([1.0, 2.0, 4.0]), 2.0, places=12)
        self.assertNotAlmostEqual(geometric_mean([1.0, 2.0, 4.0]), np.mean([1.0, 2.0, 4.0]), places=2)

    def test_grouped(self):
        experiment = flows([
            (1, 2, 5000, 1.0, 100.0),
            (1, 2, 5000, 2.0, 200.0),
            (1, 2, 5000, 3.0, 400.0),
            (3, 4, 9000, 1.0, 300.0),
            (5, 6, 1500, 1.0, 900.0),
        ])
        control = experiment.assign(fct_ns=100.0)
        result = compare(experiment, control)
        ratios = ratio_by_size(result)
        self.assertEqual([r.key for r in ratios], [(5000,), (9000,)])
        self.assertAlmostEqual(ratios[0]['geomean'], 2.0, places=12)
        self.assertEqual(ratios[0].count, 3)
        self.assertAlmostEqual(ratios[1]['geomean'], 3.0, places=12)

    def test_min_size_boundary(self):
        experiment = flows([(1, 2, 3000, 1.0, 100.0), (1, 2, 3001, 1.0, 100.0)])
        result = compare(experiment, experiment)
        self.assertEqual([r.key for r in ratio_by_size(result)], [(3001,)])
        self.assertEqual(len(ratio_by_size(result, min_size=None)), 2)

    def test_only_small_flows(self):
        experiment = flows([(1, 2, 1500, 1.0, 100.0)])
        with self.assertRaises(EmptyGroupError):
            ratio_by_size(compare(experiment, experiment))


class TestSummary(unittest.TestCase):

    def test_long_form(self):
        experiment = pd.DataFrame({'size_byte': [100, 100, 200], 'fct_ns': [10.0, 20.0, 30.0]})
        control = pd.DataFrame({'size_byte': [100, 200], 'fct_ns': [5.0, 6.0]})
        summary = fct_summary(experiment, control, metrics=('median', 'p99'))
        self.assertEqual(list(summary.columns), ['size_byte', 'source', 'statistic', 'fct_ns'])
        self.assertEqual(len(summary), 8)
        row = summary[(summary['source'] == 'experiment') & (summary['statistic'] == 'median')
                      & (summary['size_byte'] == 100)]
        self.assertEqual(row['fct_ns'].tolist(), [15.0])

    def test_ideal_fct(self):
        self.assertEqual(float(ideal_fct_ns(1000)), 3800.0)
        self.assertEqual(ideal_fct_ns([0, 10]).tolist(), [3000.0, 3008.0])
