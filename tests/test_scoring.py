import unittest

from complexmapper.models import (
    EMPTY_RESPONSE,
    FLAG_ORDER,
    HIGH_EDITING,
    REPEATED_RESPONSE,
    TIMEOUT,
    TIMING_OUTLIER_FAST,
    TIMING_OUTLIER_SLOW,
)
from complexmapper.stats.config import ScoringConfig
from complexmapper.stats.scoring import compute_trial_flags, format_summary, mad_center, score_session

from tests.helpers import make_trial, trials_with_rts


class MadCenterTests(unittest.TestCase):
    def test_empty(self) -> None:
        self.assertEqual(mad_center([]), (None, None))

    def test_values(self) -> None:
        self.assertEqual(mad_center([500, 510, 520, 530, 540, 2000]), (525.0, 15.0))


class TrialFlagTests(unittest.TestCase):
    def test_slow_outlier(self) -> None:
        flags = compute_trial_flags(trials_with_rts([500, 510, 520, 530, 540, 2000]))
        self.assertEqual(flags[5].flags, (TIMING_OUTLIER_SLOW,))
        for tf in flags[:5]:
            self.assertEqual(tf.flags, ())

    def test_fast_outlier_by_mad(self) -> None:
        flags = compute_trial_flags(trials_with_rts([500, 510, 520, 530, 540, 300]))
        self.assertEqual(flags[5].flags, (TIMING_OUTLIER_FAST,))

    def test_under_fast_threshold_always_fast(self) -> None:
        flags = compute_trial_flags(trials_with_rts([500, 500, 500, 150]))
        self.assertIn(TIMING_OUTLIER_FAST, flags[3].flags)

    def test_zero_mad_skips_detection(self) -> None:
        flags = compute_trial_flags(trials_with_rts([500, 500, 500, 900]))
        self.assertEqual(flags[3].flags, ())

    def test_small_sample_skips_detection(self) -> None:
        flags = compute_trial_flags(trials_with_rts([500, 5000]))
        self.assertEqual([tf.flags for tf in flags], [(), ()])

    def test_timeout_suppresses_timing_flags(self) -> None:
        trials = trials_with_rts([500, 510, 520, 530])
        trials.append(make_trial("tree", "", 3000, index=4, timed_out=True))
        trials.append(make_trial("tree", "", 50, index=5, timed_out=True))
        flags = compute_trial_flags(trials)
        self.assertEqual(flags[4].flags, (EMPTY_RESPONSE, TIMEOUT))
        self.assertEqual(flags[5].flags, (EMPTY_RESPONSE, TIMEOUT))

    def test_timeout_keeps_content_flags(self) -> None:
        trials = trials_with_rts([500, 510, 520, 530])
        trials.append(make_trial("tree", "Tree", 3000, index=4, timed_out=True, backspaces=10))
        flags = compute_trial_flags(trials)
        self.assertEqual(flags[4].flags, tuple(f for f in FLAG_ORDER if f in (REPEATED_RESPONSE, HIGH_EDITING, TIMEOUT)))
        self.assertNotIn(TIMING_OUTLIER_SLOW, flags[4].flags)

    def test_timeout_excluded_from_sample(self) -> None:
        trials = trials_with_rts([500, 510, 520])
        trials.append(make_trial("x", "", 99999, index=3, timed_out=True))
        summary = score_session(trials).summary
        self.assertEqual(summary.mean_reaction_time_ms, 510.0)
        self.assertEqual(summary.timeout_count, 1)

    def test_repeated_response_case_insensitive(self) -> None:
        flags = compute_trial_flags([make_trial("Tree", " tree ", 500)])
        self.assertEqual(flags[0].flags, (REPEATED_RESPONSE,))

    def test_empty_response(self) -> None:
        flags = compute_trial_flags([make_trial("tree", "   ", 500)])
        self.assertEqual(flags[0].flags, (EMPTY_RESPONSE,))

    def test_high_editing(self) -> None:
        noisy = make_trial("tree", "ok", 500, backspaces=4)
        calm = make_trial("tree", "ok", 500, backspaces=3)
        long_word = make_trial("tree", "wonderful", 500, edits=8)
        flags = compute_trial_flags([noisy, calm, long_word])
        self.assertEqual(flags[0].flags, (HIGH_EDITING,))
        self.assertEqual(flags[1].flags, ())
        self.assertEqual(flags[2].flags, ())

    def test_custom_threshold(self) -> None:
        cfg = ScoringConfig(fast_threshold_ms=600)
        flags = compute_trial_flags(trials_with_rts([500, 700]), cfg)
        self.assertEqual(flags[0].flags, (TIMING_OUTLIER_FAST,))

    def test_deterministic(self) -> None:
        trials = trials_with_rts([500, 510, 520, 530, 540, 2000])
        self.assertEqual(score_session(trials), score_session(trials))


class SummaryTests(unittest.TestCase):
    def test_empty_session(self) -> None:
        scoring = score_session([])
        self.assertEqual(scoring.trial_flags, ())
        self.assertEqual(scoring.summary.total_trials, 0)
        self.assertIsNone(scoring.summary.mean_reaction_time_ms)
        self.assertIsNone(scoring.summary.median_reaction_time_ms)
        self.assertIsNone(scoring.summary.std_dev_reaction_time_ms)
        self.assertIn("n/a", format_summary(scoring.summary))

    def test_statistics(self) -> None:
        summary = score_session(trials_with_rts([500, 510, 520, 530, 540, 2000])).summary
        self.assertEqual(summary.total_trials, 6)
        self.assertEqual(summary.mean_reaction_time_ms, 766.67)
        self.assertEqual(summary.median_reaction_time_ms, 525.0)
        self.assertEqual(summary.timing_outlier_count, 1)
        self.assertEqual(summary.timing_outlier_slow_count, 1)

    def test_population_std(self) -> None:
        summary = score_session(trials_with_rts([400, 600])).summary
        self.assertEqual(summary.std_dev_reaction_time_ms, 100.0)

    def test_practice_excluded(self) -> None:
        trials = [make_trial("warm", "", 100, practice=True)] + trials_with_rts([500, 600])
        scoring = score_session(trials)
        self.assertEqual(scoring.summary.total_trials, 2)
        self.assertEqual(scoring.summary.empty_response_count, 0)
        self.assertEqual(scoring.summary.mean_reaction_time_ms, 550.0)
        self.assertEqual(len(scoring.trial_flags), 3)


if __name__ == "__main__":
    unittest.main()
