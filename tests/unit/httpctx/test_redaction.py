"""Tests for the collection redactor."""

from __future__ import annotations

from werkzeug.datastructures import Headers, MultiDict

from httpctx_lib.config import FilterRule
from httpctx_lib.errors import CollectionAccessError
from httpctx_lib.filters import FilterSet
from httpctx_lib.metrics import get_metrics
from httpctx_lib.pairs import NameValuePair
from httpctx_lib.redaction import (
    COLLECTION_ERROR_KEY,
    CollectionRedactor,
    fetch_collection,
    redact,
    redact_headers,
)

from tests.utils.logging import capture_enrichment_metrics


SERVER_VARIABLES = MultiDict([("AUTH_PASSWORD", "123"), ("AUTH_TYPE", "Forms")])


def test_discard_rule_removes_only_that_field():
    """Test that an empty replacement drops exactly the matching field."""

    result = redact(SERVER_VARIABLES, FilterSet.compile([FilterRule("AUTH_PASSWORD", "")]))

    assert result.to_dict() == {"AUTH_TYPE": "Forms"}


def test_replace_rule_overwrites_only_that_field():
    """Test that a non-empty replacement masks exactly the matching field."""

    result = redact(SERVER_VARIABLES, FilterSet.compile([FilterRule("AUTH_PASSWORD", "***")]))

    assert list(result.items(multi=True)) == [("AUTH_PASSWORD", "***"), ("AUTH_TYPE", "Forms")]


def test_suppress_all_returns_empty_collection():
    """Test that the '' rule empties the collection regardless of content."""

    filter_set = FilterSet.compile([FilterRule("", ""), FilterRule("AUTH_TYPE", "***")])

    assert len(redact(SERVER_VARIABLES, filter_set)) == 0


def test_cookie_sample_rules():
    """Test regex discard, exact discard and exact replace over a list of pairs."""

    cookies = [
        ("COOKIE_10", "ck1"),
        ("COOKIE_11", "ck2"),
        ("COOKIE_2", "ck3"),
        ("COOKIE_3", "ck4"),
        ("COOKIE_4", "ck5"),
    ]
    filter_set = FilterSet.compile(
        [
            FilterRule("COOKIE_1.*", "", name_is_regex=True),
            FilterRule("COOKIE_2", ""),
            FilterRule("COOKIE_3", "***"),
        ]
    )

    result = redact(cookies, filter_set)

    assert len(result) == 2
    assert result["COOKIE_3"] == "***"
    assert result["COOKIE_4"] == "ck5"


def test_regex_only_applies_without_exact_match():
    """Test that a regex discard does not override an exact replacement."""

    filter_set = FilterSet.compile(
        [
            FilterRule("AUTH_.*", "", name_is_regex=True),
            FilterRule("AUTH_TYPE", "hidden"),
        ]
    )

    result = redact(SERVER_VARIABLES, filter_set)

    assert result.to_dict() == {"AUTH_TYPE": "hidden"}


def test_first_matching_regex_wins():
    """Test that regex rules are evaluated in declaration order."""

    filter_set = FilterSet.compile(
        [
            FilterRule("AUTH", "first", name_is_regex=True),
            FilterRule("AUTH_PASS.*", "", name_is_regex=True),
        ]
    )

    result = redact(SERVER_VARIABLES, filter_set)

    assert result["AUTH_PASSWORD"] == "first"
    assert result["AUTH_TYPE"] == "first"


def test_cookie_header_always_skipped():
    """Test that Cookie headers are dropped in any casing without a rule."""

    headers = Headers([("Accept", "text/html"), ("Cookie", "a=1"), ("cookie", "b=2")])

    result = redact_headers(headers, FilterSet.compile(None))

    assert list(result.items(multi=True)) == [("Accept", "text/html")]


def test_multi_valued_names_keep_order_and_mask_once():
    """Test that repeated names are kept, and a replaced name holds one value."""

    source = MultiDict([("tag", "a"), ("token", "t1"), ("tag", "b"), ("token", "t2")])

    result = redact(source, FilterSet.compile([FilterRule("token", "***")]))

    assert list(result.items(multi=True)) == [("tag", "a"), ("token", "***"), ("tag", "b")]


def test_filtering_is_idempotent():
    """Test that filtering an already filtered collection changes nothing."""

    redactor = CollectionRedactor(
        FilterSet.compile(
            [FilterRule("AUTH_PASSWORD", "***"), FilterRule("AUTH_T.*", "", name_is_regex=True)]
        )
    )

    once = redactor.apply(SERVER_VARIABLES)
    twice = redactor.apply(once)

    assert list(twice.items(multi=True)) == list(once.items(multi=True))


def test_redactor_accepts_name_value_pairs():
    """Test that pair lists are accepted as a collection shape."""

    pairs = [NameValuePair("a", "1"), NameValuePair("b", "2")]

    result = redact(pairs, FilterSet.compile([FilterRule("b", "")]))

    assert result.to_dict() == {"a": "1"}


def test_redaction_is_counted():
    """Test that replaced and discarded fields are counted."""

    with capture_enrichment_metrics() as metrics:
        redact(
            SERVER_VARIABLES,
            FilterSet.compile([FilterRule("AUTH_PASSWORD", "***"), FilterRule("AUTH_TYPE", "")]),
        )

        assert metrics()["redacted_total"] == 1
        assert metrics()["discarded_total"] == 1


def test_fetch_collection_substitutes_error_entry(caplog):
    """Test that a refused collection becomes a single error entry."""

    def _refuse():
        raise CollectionAccessError("A potentially dangerous Request.Form value was detected")

    with caplog.at_level("WARNING", logger="httpctx_lib.redaction"):
        result = fetch_collection(_refuse, "form")

    assert result.to_dict() == {
        COLLECTION_ERROR_KEY: "A potentially dangerous Request.Form value was detected"
    }
    assert "Error parsing form collection" in caplog.text
    assert get_metrics().collection_errors == {"form": 1}


def test_fetch_collection_copies_source():
    """Test that the fetched collection is detached from the source."""

    source = MultiDict([("a", "1")])

    result = fetch_collection(lambda: source, "query_string")
    source.add("b", "2")

    assert result.to_dict() == {"a": "1"}
