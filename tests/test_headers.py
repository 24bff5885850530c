from __future__ import annotations

from posture_review.headers import find_column_index, split_header_list


def test_alias_resolution_ignores_case_and_whitespace():
    header = ["IsEnabled", "  sheet name ", "AppIdHeaders"]
    assert find_column_index(header, ["SheetName", "Sheet Name"]) == 1


def test_first_matching_candidate_wins_over_position():
    header = ["Application ID", "UniqueID"]
    assert find_column_index(header, ["UniqueID", "Application ID"]) == 1


def test_first_matching_index_for_repeated_header():
    header = ["Tag", "tag", "TAG"]
    assert find_column_index(header, ["TAG"]) == 0


def test_not_found_returns_none():
    assert find_column_index(["A", "B"], ["C", "D"]) is None
    assert find_column_index([], ["A"]) is None


def test_blank_and_non_string_headers_are_tolerated():
    header = [None, 2024, float("nan"), "Owner"]
    assert find_column_index(header, ["", "owner"]) == 3
    assert find_column_index(header, ["2024"]) == 1


def test_non_breaking_space_counts_as_space():
    assert find_column_index(["App\u00a0ID "], ["App ID"]) == 0


def test_split_header_list_trims_and_drops_empty_tokens():
    assert split_header_list(" UniqueID, App ID ,, ") == ["UniqueID", "App ID"]
    assert split_header_list(None) == []
    assert split_header_list("") == []
