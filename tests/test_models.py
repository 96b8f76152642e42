import unittest

from complexmapper.models import DraftSession, SessionConfig, SessionResult, Trial
from complexmapper.stimuli.registry import DEMO_LIST_V1, EXPECTED_HASHES

from tests.helpers import make_session, make_trial


class ModelJsonTests(unittest.TestCase):
    def test_trial_defaults(self) -> None:
        trial = Trial.from_json({"stimulus": {"word": "tree"}, "association": {"reactionTimeMs": 412.0}})
        self.assertEqual(trial.association.response, "")
        self.assertEqual(trial.association.reaction_time_ms, 412)
        self.assertIsNone(trial.association.t_first_key_ms)
        self.assertIsNone(trial.timed_out)
        self.assertNotIn("timedOut", trial.to_json())

    def test_unknown_order_policy_falls_back(self) -> None:
        self.assertEqual(SessionConfig.from_json({"orderPolicy": "shuffled"}).order_policy, "fixed")

    def test_session_round_trip(self) -> None:
        session = make_session()
        self.assertEqual(SessionResult.from_json(session.to_json()), session)
        self.assertEqual(len(session.scored_trials), 10)

    def test_with_response_keeps_timing(self) -> None:
        trial = make_trial("tree", "leaf", 640, backspaces=2)
        blank = trial.with_response("")
        self.assertEqual(blank.association.response, "")
        self.assertEqual(blank.association.reaction_time_ms, 640)
        self.assertEqual(blank.association.backspace_count, 2)


class DraftTests(unittest.TestCase):
    def test_to_session_result(self) -> None:
        words = list(DEMO_LIST_V1.words)
        draft = DraftSession(
            id="d1",
            stimulus_list_id="demo-10",
            stimulus_list_version="1.0.0",
            word_list=words,
            stimulus_order=words,
            started_at="2025-01-01T00:00:00.000Z",
        )
        for i, w in enumerate(words):
            draft.record_trial(make_trial(w, f"r{i}", 500 + i * 10, index=i))
        self.assertEqual(draft.current_index, 10)
        session = draft.to_session_result(DEMO_LIST_V1, completed_at="2025-01-01T00:05:00.000Z")
        self.assertEqual(session.id, "d1")
        self.assertEqual(session.scoring.summary.total_trials, 10)
        self.assertEqual(session.stimulus_pack_snapshot.stimulus_list_hash, EXPECTED_HASHES["demo-10@1.0.0"])
        self.assertEqual(session.provenance_snapshot.word_count, 10)

    def test_draft_json_round_trip(self) -> None:
        draft = DraftSession(id="d2", stimulus_list_id="demo-10", stimulus_list_version="1.0.0", trial_timeout_ms=3000)
        self.assertEqual(DraftSession.from_json(draft.to_json()), draft)


if __name__ == "__main__":
    unittest.main()
