from app.domain.assignment.workload import Candidate, pick_lowest_workload


def test_fewest_active_assignments_wins() -> None:
    chosen = pick_lowest_workload(
        [
            Candidate(user_id="a", full_name="Amal", active_assignments=3),
            Candidate(user_id="b", full_name="Bilal", active_assignments=1),
            Candidate(user_id="c", full_name="Chadi", active_assignments=2),
        ]
    )
    assert chosen.user_id == "b"


def test_ties_break_on_name_then_id() -> None:
    chosen = pick_lowest_workload(
        [
            Candidate(user_id="z", full_name="nour", active_assignments=0),
            Candidate(user_id="y", full_name="Nour", active_assignments=0),
            Candidate(user_id="x", full_name="Sami", active_assignments=0),
        ]
    )
    assert chosen.user_id == "y"


def test_no_candidates_returns_none() -> None:
    assert pick_lowest_workload([]) is None
