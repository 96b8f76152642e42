"""Builders shared by the test modules."""

from typing import List, Optional, Sequence

from complexmapper.models import AssociationResponse, StimulusWord, Trial


def make_trial(
    word: str,
    response: str,
    rt: float,
    index: int = 0,
    practice: bool = False,
    timed_out: Optional[bool] = None,
    backspaces: int = 0,
    edits: int = 0,
) -> Trial:
    return Trial(
        stimulus=StimulusWord(word=word, index=index),
        association=AssociationResponse(
            response=response,
            reaction_time_ms=rt,
            t_first_key_ms=None,
            backspace_count=backspaces,
            edit_count=edits,
        ),
        is_practice=practice,
        timed_out=timed_out,
    )


def trials_with_rts(rts: Sequence[float]) -> List[Trial]:
    return [make_trial(f"w{i}", f"r{i}", rt, index=i) for i, rt in enumerate(rts)]


STARTED_AT = "2025-01-02T03:00:00.000Z"
COMPLETED_AT = "2025-01-02T03:05:00.000Z"


def make_session(session_id: str = "session-1", completed_at: str = COMPLETED_AT):
    """A scored demo-10 session with a repeat, an empty answer, a phrase and a slow trial."""
    from complexmapper.app.session_manager import draft_to_session_result
    from complexmapper.models import DraftSession
    from complexmapper.stimuli.registry import DEMO_LIST_V1

    words = list(DEMO_LIST_V1.words)
    responses = ["tree", "", "big roof"] + [f"resp{i}" for i in range(3, 10)]
    rts = [500, 510, 520, 530, 540, 550, 560, 570, 580, 3000]
    trials = [make_trial(w, r, rt, index=i) for i, (w, r, rt) in enumerate(zip(words, responses, rts))]
    draft = DraftSession(
        id=session_id,
        stimulus_list_id=DEMO_LIST_V1.id,
        stimulus_list_version=DEMO_LIST_V1.version,
        word_list=words,
        stimulus_order=words,
        trials=trials,
        current_index=len(trials),
        saved_at=STARTED_AT,
        started_at=STARTED_AT,
    )
    return draft_to_session_result(draft, DEMO_LIST_V1, completed_at=completed_at)
