# SPDX-License-Identifier: MIT
"""Tests for layer metadata decoding and timestamps."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from rvm_bundler.metadata import LayerMetadata, format_timestamp, parse_timestamp


class TestLayerMetadata:
    def test_empty_mapping_has_no_prior_values(self) -> None:
        metadata = LayerMetadata.from_mapping({})

        assert metadata.is_empty
        assert metadata.cache_sha is None
        assert metadata.ruby_version is None

    def test_none_is_empty(self) -> None:
        assert LayerMetadata.from_mapping(None) == LayerMetadata()

    def test_decodes_canonical_keys(self) -> None:
        metadata = LayerMetadata.from_mapping(
            {
                "version": "2.1.4",
                "built_at": "2024-03-01T12:00:00.000000Z",
                "cache_sha": "abc",
                "ruby_version": "ruby-2.7",
            }
        )

        assert metadata.version == "2.1.4"
        assert metadata.cache_sha == "abc"
        assert metadata.ruby_version == "ruby-2.7"
        assert metadata.extra == {}

    def test_canonical_key_wins_over_alias(self) -> None:
        metadata = LayerMetadata.from_mapping({"cache_sha": "snake", "cacheFingerprint": "camel"})

        assert metadata.cache_sha == "snake"

    def test_unknown_keys_are_preserved_on_encode(self) -> None:
        metadata = LayerMetadata.from_mapping({"cache_sha": "abc", "added_later": [1, 2]})

        assert metadata.to_dict() == {"cache_sha": "abc", "added_later": [1, 2]}

    def test_to_dict_uses_snake_case_keys(self) -> None:
        metadata = LayerMetadata.from_mapping({"cacheFingerprint": "", "resolvedEnvVersion": "ruby-3.0"})

        assert metadata.to_dict() == {"cache_sha": "", "ruby_version": "ruby-3.0"}

    def test_built_at_datetime(self) -> None:
        metadata = LayerMetadata(built_at="2024-03-01T12:00:00.250000Z")

        assert metadata.built_at_datetime == datetime(2024, 3, 1, 12, 0, 0, 250000, tzinfo=timezone.utc)


class TestTimestamps:
    def test_naive_datetimes_are_taken_as_utc(self) -> None:
        assert format_timestamp(datetime(2024, 1, 2, 3, 4, 5)) == "2024-01-02T03:04:05.000000Z"

    def test_offsets_are_normalized_to_utc(self) -> None:
        moment = datetime(2024, 1, 2, 5, 4, 5, tzinfo=timezone(timedelta(hours=2)))

        assert format_timestamp(moment) == "2024-01-02T03:04:05.000000Z"

    def test_lexical_order_matches_chronological_order(self) -> None:
        base = datetime(2024, 1, 1, tzinfo=timezone.utc)
        moments = [base + timedelta(microseconds=offset) for offset in (999_999, 1, 1_000_000, 0)]

        formatted = [format_timestamp(moment) for moment in moments]

        assert sorted(formatted) == [format_timestamp(moment) for moment in sorted(moments)]

    def test_parse_round_trip(self) -> None:
        moment = datetime(2024, 6, 30, 23, 59, 59, 123456, tzinfo=timezone.utc)

        assert parse_timestamp(format_timestamp(moment)) == moment
