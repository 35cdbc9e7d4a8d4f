"""
Utility Tests
Performance monitoring and result persistence
"""
import json

import pytest

from utils import PerformanceMonitor, create_performance_report, format_duration, save_results


class TestPerformanceMonitor:

    def test_records_operations(self):
        monitor = PerformanceMonitor()
        for _ in range(3):
            with monitor.start_operation("prove", constraints=10):
                pass
        summary = monitor.get_summary()
        assert summary['total_operations'] == 3
        assert summary['operations']['prove']['count'] == 3
        assert monitor.metrics[0].additional_data == {'constraints': 10, 'exception': False}

    def test_records_failed_operation(self):
        monitor = PerformanceMonitor()
        with pytest.raises(RuntimeError):
            with monitor.start_operation("verify"):
                raise RuntimeError("bad proof")
        assert monitor.metrics[0].additional_data['exception'] is True

    def test_empty_report(self):
        assert "No performance data available." in create_performance_report(PerformanceMonitor())

    def test_save_metrics(self, tmp_path):
        monitor = PerformanceMonitor()
        with monitor.start_operation("setup"):
            pass
        path = tmp_path / "metrics" / "perf.json"
        monitor.save_metrics(path)
        assert json.loads(path.read_text())['summary']['total_operations'] == 1


class TestResults:

    def test_large_integers_saved_as_hex(self, tmp_path):
        path = tmp_path / "results.json"
        root = (1 << 200) + 5
        save_results({'circuit': {'root': root}, 'transactions': []}, path)
        data = json.loads(path.read_text())['data']
        assert data['circuit']['root'] == hex(root)
        assert (tmp_path / "results_summary.txt").exists()

    @pytest.mark.parametrize("seconds,expected", [(0.5, "500.0ms"), (2, "2.00s"), (90, "1m 30.0s")])
    def test_format_duration(self, seconds, expected):
        assert format_duration(seconds) == expected
