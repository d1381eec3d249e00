"""
信号分析器测试
"""

import pytest

from config.settings import Thresholds
from core.analyzers import (
    CpuAnalyzer,
    GcPauseAnalyzer,
    HeapAnalyzer,
    ThreadAnalyzer,
    TrendAnalyzer,
    WorkerPoolAnalyzer,
    build_analyzers,
    combine_verdicts,
)
from core.models import PartialVerdict, PredictionLevel
from tests.conftest import make_pool, make_snapshot


class TestHeapAnalyzer:
    @pytest.mark.parametrize(
        ("heap", "level", "score"),
        [
            (96.0, PredictionLevel.IMMINENT, 0.95),
            (95.0, PredictionLevel.IMMINENT, 0.95),
            (90.0, PredictionLevel.CRITICAL, 0.75),
            (85.0, PredictionLevel.CRITICAL, 0.75),
            (75.0, PredictionLevel.WARNING, 0.5),
        ],
    )
    def test_threshold_bands(self, heap, level, score):
        verdict = HeapAnalyzer().analyze(make_snapshot(heap))
        assert verdict.level is level
        assert verdict.risk_score == score

    def test_imminent_reports_critical_issue(self):
        verdict = HeapAnalyzer().analyze(make_snapshot(96.0))
        assert verdict.critical_issues == ("Heap memory at 96.00% - IMMINENT CRASH RISK",)
        assert verdict.warnings == ()

    def test_warning_band_reports_warning(self):
        verdict = HeapAnalyzer().analyze(make_snapshot(72.5))
        assert verdict.warnings == ("Heap memory at 72.50% - Approaching threshold",)
        assert verdict.critical_issues == ()

    def test_safe_range_scales_to_thirty_percent(self):
        low = HeapAnalyzer().analyze(make_snapshot(20.0))
        high = HeapAnalyzer().analyze(make_snapshot(60.0))
        assert low.level is PredictionLevel.SAFE
        assert low.risk_score == pytest.approx(0.06)
        assert high.risk_score == pytest.approx(0.18)
        assert 0 < low.risk_score < high.risk_score < 0.3

    def test_custom_thresholds(self):
        analyzer = HeapAnalyzer(warning=40.0, critical=50.0, imminent=60.0)
        assert analyzer.analyze(make_snapshot(55.0)).level is PredictionLevel.CRITICAL


class TestCpuAnalyzer:
    def test_critical(self):
        verdict = CpuAnalyzer().analyze(make_snapshot(cpu=90.0))
        assert verdict.level is PredictionLevel.CRITICAL
        assert verdict.risk_score == 0.7
        assert verdict.critical_issues == ("CPU usage at 90.00% - High load may cause freezing",)

    def test_warning(self):
        verdict = CpuAnalyzer().analyze(make_snapshot(cpu=75.0))
        assert verdict.level is PredictionLevel.WARNING
        assert verdict.risk_score == 0.4

    def test_safe_scales_to_twenty_percent(self):
        verdict = CpuAnalyzer().analyze(make_snapshot(cpu=50.0))
        assert verdict.level is PredictionLevel.SAFE
        assert verdict.risk_score == pytest.approx(0.1)

    def test_unknown_load_is_neutral(self):
        verdict = CpuAnalyzer().analyze(make_snapshot(cpu=None))
        assert verdict == PartialVerdict()


class TestThreadAnalyzer:
    def test_critical(self):
        verdict = ThreadAnalyzer().analyze(make_snapshot(threads=95))
        assert verdict.level is PredictionLevel.CRITICAL
        assert verdict.risk_score == 0.65

    def test_warning(self):
        verdict = ThreadAnalyzer().analyze(make_snapshot(threads=85))
        assert verdict.level is PredictionLevel.WARNING
        assert verdict.risk_score == 0.35

    def test_safe_has_zero_score(self):
        verdict = ThreadAnalyzer().analyze(make_snapshot(threads=20))
        assert verdict == PartialVerdict()

    def test_peak_volatility_is_informational_only(self):
        verdict = ThreadAnalyzer().analyze(make_snapshot(threads=20, peak_threads=40))
        assert verdict.warnings == ("Peak threads (40) significantly higher than current (20)",)
        assert verdict.level is PredictionLevel.SAFE
        assert verdict.risk_score == 0.0

    def test_peak_volatility_appended_after_level_warning(self):
        verdict = ThreadAnalyzer(warning=10, critical=50).analyze(
            make_snapshot(threads=20, peak_threads=31),
        )
        assert verdict.level is PredictionLevel.WARNING
        assert len(verdict.warnings) == 2
        assert verdict.warnings[0].startswith("Thread count at 20")

    def test_peak_at_exactly_one_and_a_half_is_ignored(self):
        verdict = ThreadAnalyzer().analyze(make_snapshot(threads=20, peak_threads=30))
        assert verdict.warnings == ()


class TestGcPauseAnalyzer:
    def test_skipped_when_no_pause_observed(self):
        assert GcPauseAnalyzer().analyze(make_snapshot(last_pause_ms=0)) is None

    def test_critical(self):
        verdict = GcPauseAnalyzer().analyze(make_snapshot(last_pause_ms=6000))
        assert verdict.level is PredictionLevel.CRITICAL
        assert verdict.risk_score == 0.6
        assert "6000 ms" in verdict.critical_issues[0]

    def test_warning(self):
        verdict = GcPauseAnalyzer().analyze(make_snapshot(last_pause_ms=1500))
        assert verdict.level is PredictionLevel.WARNING
        assert verdict.risk_score == 0.3

    def test_short_pause_is_safe(self):
        verdict = GcPauseAnalyzer().analyze(make_snapshot(last_pause_ms=5))
        assert verdict == PartialVerdict()


class TestWorkerPoolAnalyzer:
    def test_no_contribution_without_pool(self):
        assert WorkerPoolAnalyzer().analyze(make_snapshot(worker_pool=None)) is None

    def test_measured_empty_queue_is_safe_contribution(self):
        verdict = WorkerPoolAnalyzer().analyze(make_snapshot(worker_pool=make_pool(0)))
        assert verdict == PartialVerdict()

    def test_critical(self):
        verdict = WorkerPoolAnalyzer().analyze(make_snapshot(worker_pool=make_pool(80)))
        assert verdict.level is PredictionLevel.CRITICAL
        assert verdict.risk_score == 0.7
        assert verdict.critical_issues == ("Thread pool queue at 80 - Tasks backing up",)

    def test_warning(self):
        verdict = WorkerPoolAnalyzer().analyze(make_snapshot(worker_pool=make_pool(60)))
        assert verdict.level is PredictionLevel.WARNING
        assert verdict.risk_score == 0.4


class TestTrendAnalyzer:
    def test_inert_below_three_samples(self):
        history = [make_snapshot(10.0), make_snapshot(90.0)]
        assert TrendAnalyzer().analyze(history[-1], history) is None

    def test_rapid_growth_warns(self):
        history = [make_snapshot(40.0), make_snapshot(45.0), make_snapshot(55.0)]
        verdict = TrendAnalyzer().analyze(history[-1], history)
        assert verdict.level is PredictionLevel.WARNING
        assert verdict.risk_score == 0.4
        assert verdict.warnings == ("Heap memory growing rapidly: +15.00% trend",)

    def test_uses_only_oldest_and_newest(self):
        # 中间点的大幅波动不影响两点斜率
        history = [make_snapshot(40.0), make_snapshot(95.0), make_snapshot(48.0)]
        verdict = TrendAnalyzer().analyze(history[-1], history)
        assert verdict.warnings == ()
        assert verdict.level is PredictionLevel.SAFE

    def test_growth_of_exactly_ten_points_is_not_rapid(self):
        history = [make_snapshot(40.0), make_snapshot(45.0), make_snapshot(50.0)]
        verdict = TrendAnalyzer().analyze(history[-1], history)
        assert verdict.level is PredictionLevel.SAFE


class TestCombineVerdicts:
    def test_risk_score_is_max_not_sum(self):
        combined = combine_verdicts(
            [
                PartialVerdict(risk_score=0.4, level=PredictionLevel.WARNING),
                PartialVerdict(risk_score=0.3, level=PredictionLevel.WARNING),
            ],
        )
        assert combined.risk_score == 0.4

    def test_skips_missing_contributions(self):
        combined = combine_verdicts([None, PartialVerdict(warnings=("x",)), None])
        assert combined.warnings == ("x",)
        assert combined.level is PredictionLevel.SAFE

    def test_empty_is_safe_zero(self):
        assert combine_verdicts([]) == PartialVerdict()

    def test_clamps_to_one(self):
        combined = combine_verdicts([PartialVerdict(risk_score=1.7)])
        assert combined.risk_score == 1.0


def test_build_analyzers_order_and_thresholds():
    thresholds = Thresholds(heap_warning=60.0, queue_warning=10, queue_critical=20)
    analyzers = build_analyzers(thresholds)

    assert [analyzer.name for analyzer in analyzers] == [
        "heap",
        "cpu",
        "threads",
        "gc",
        "worker_pool",
        "trend",
    ]
    assert analyzers[0].warning == 60.0
    assert analyzers[4].critical == 20
