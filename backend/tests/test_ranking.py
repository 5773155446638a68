from backend.src.engine.ranking import calculate_aggregate_rankings, parse_ranking_from_text
from backend.src.engine.schemas import Stage2Ranking


def _record(model, parsed):
    return Stage2Ranking(model=model, ranking="...", parsed_ranking=parsed)


def test_parse_numbered_final_ranking():
    text = "FINAL RANKING:\n1. Response B\n2. Response A\n3. Response C"
    assert parse_ranking_from_text(text) == ["Response B", "Response A", "Response C"]


def test_parse_ignores_evaluation_text_before_marker():
    text = (
        "Response A is thorough. Response C is wrong about X.\n\n"
        "FINAL RANKING:\n1. Response C\n2. Response A"
    )
    assert parse_ranking_from_text(text) == ["Response C", "Response A"]


def test_parse_uses_appearance_order_not_printed_numbers():
    text = "FINAL RANKING:\n3. Response A\n1. Response B\n2. Response C"
    assert parse_ranking_from_text(text) == ["Response A", "Response B", "Response C"]


def test_parse_numbered_without_space():
    assert parse_ranking_from_text("FINAL RANKING:\n1.Response B\n2.  Response A") == ["Response B", "Response A"]


def test_parse_numbered_entries_win_over_bare_mentions():
    text = "FINAL RANKING:\nResponse C was close.\n1. Response B\n2. Response A"
    assert parse_ranking_from_text(text) == ["Response B", "Response A"]


def test_parse_marker_with_unnumbered_labels():
    text = "FINAL RANKING:\n- Response B\n- Response A"
    assert parse_ranking_from_text(text) == ["Response B", "Response A"]


def test_parse_without_marker_scans_whole_text():
    assert parse_ranking_from_text("I think Response A is best, then Response C.") == ["Response A", "Response C"]


def test_parse_without_marker_prefers_numbered():
    text = "Response C is weak.\n1. Response A\n2. Response B"
    assert parse_ranking_from_text(text) == ["Response A", "Response B"]


def test_parse_empty_text():
    assert parse_ranking_from_text("") == []


def test_parse_marker_present_but_nothing_parses():
    assert parse_ranking_from_text("FINAL RANKING:\nNo responses to rank.") == []


def test_parse_marker_present_does_not_fall_back_to_text_before_it():
    text = "Response A is great and Response B is fine.\nFINAL RANKING:\n(none)"
    assert parse_ranking_from_text(text) == []


def test_parse_is_case_sensitive():
    assert parse_ranking_from_text("final ranking:\n1. response a") == []
    assert parse_ranking_from_text("Final Ranking:\n1. Response B") == ["Response B"]


def test_parse_keeps_duplicates_and_unknown_letters():
    text = "FINAL RANKING:\n1. Response A\n2. Response A\n3. Response Z"
    assert parse_ranking_from_text(text) == ["Response A", "Response A", "Response Z"]


def test_parse_repeated_marker_uses_first_section():
    text = "FINAL RANKING:\n1. Response B\n2. Response A\nFINAL RANKING:\n1. Response C"
    assert parse_ranking_from_text(text) == ["Response B", "Response A"]


def test_aggregate_round_robin_ties():
    label_to_model = {"Response A": "m1", "Response B": "m2", "Response C": "m3"}
    records = [
        _record("j1", ["Response A", "Response B", "Response C"]),
        _record("j2", ["Response B", "Response C", "Response A"]),
        _record("j3", ["Response C", "Response A", "Response B"]),
    ]
    aggregate = calculate_aggregate_rankings(records, label_to_model)

    assert len(aggregate) == 3
    assert all(a.average_rank == 2.0 for a in aggregate)
    assert all(a.rankings_count == 3 for a in aggregate)
    # Ties keep first-mention order.
    assert [a.model for a in aggregate] == ["m1", "m2", "m3"]


def test_aggregate_sorted_ascending():
    label_to_model = {"Response A": "m1", "Response B": "m2"}
    records = [
        _record("j1", ["Response B", "Response A"]),
        _record("j2", ["Response B", "Response A"]),
    ]
    aggregate = calculate_aggregate_rankings(records, label_to_model)
    assert [(a.model, a.average_rank, a.rankings_count) for a in aggregate] == [("m2", 1.0, 2), ("m1", 2.0, 2)]


def test_aggregate_excludes_never_ranked_models():
    label_to_model = {"Response A": "m1", "Response B": "m2", "Response C": "m3"}
    records = [_record("j1", ["Response B", "Response A"]), _record("j2", ["Response A"])]
    aggregate = calculate_aggregate_rankings(records, label_to_model)

    assert {a.model for a in aggregate} == {"m1", "m2"}
    by_model = {a.model: a for a in aggregate}
    assert by_model["m1"].average_rank == 1.5
    assert by_model["m1"].rankings_count == 2
    assert by_model["m2"].rankings_count == 1


def test_aggregate_ignores_unknown_labels_but_keeps_their_position():
    label_to_model = {"Response A": "m1", "Response B": "m2"}
    records = [_record("j1", ["Response D", "Response B", "Response A"])]
    aggregate = calculate_aggregate_rankings(records, label_to_model)
    assert [(a.model, a.average_rank) for a in aggregate] == [("m2", 2.0), ("m1", 3.0)]


def test_aggregate_empty_inputs():
    assert calculate_aggregate_rankings([], {"Response A": "m1"}) == []
    assert calculate_aggregate_rankings([_record("j1", [])], {"Response A": "m1"}) == []


def test_aggregate_duplicate_labels_skew_average():
    # Repeated labels are counted every time they appear; kept as-is, not deduplicated.
    label_to_model = {"Response A": "m1", "Response B": "m2"}
    records = [_record("j1", ["Response A", "Response B", "Response A"])]
    aggregate = calculate_aggregate_rankings(records, label_to_model)
    by_model = {a.model: a for a in aggregate}
    assert by_model["m1"].average_rank == 2.0
    assert by_model["m1"].rankings_count == 2
