"""Tests for talentdash.analytics.identifiers — platform, username and provider-id hygiene."""
import pytest

from talentdash.analytics.identifiers import (
    is_plausible_external_id, is_uuid, normalize_platform, normalize_username,
)


class TestNormalizePlatform:
    """Tests for normalize_platform()."""

    def test_lowercases_and_strips(self):
        assert normalize_platform('  Instagram ') == 'instagram'

    @pytest.mark.parametrize('platform', ['twitter', '', None, 7, ['instagram']])
    def test_unsupported_platform_raises(self, platform):
        with pytest.raises(ValueError, match='Unsupported platform'):
            normalize_platform(platform)


class TestNormalizeUsername:
    """Tests for normalize_username()."""

    def test_strips_leading_at(self):
        assert normalize_username('@alice') == 'alice'

    def test_strips_repeated_at_and_whitespace(self):
        assert normalize_username('  @@alice_ig ') == 'alice_ig'

    @pytest.mark.parametrize('value', ['', '   ', '@', None, 42])
    def test_empty_or_non_string_is_none(self, value):
        assert normalize_username(value) is None


class TestIsUuid:
    """Tests for is_uuid()."""

    def test_detects_uuid(self):
        assert is_uuid('3f2504e0-4f89-11d3-9a0c-0305e82c3301')

    def test_uppercase_uuid(self):
        assert is_uuid('3F2504E0-4F89-11D3-9A0C-0305E82C3301')

    def test_numeric_id_is_not_uuid(self):
        assert not is_uuid('17841400000000001')


class TestIsPlausibleExternalId:
    """Tests for is_plausible_external_id()."""

    def test_numeric_provider_id(self):
        assert is_plausible_external_id('17841400000000001', 'instagram')

    def test_rejects_internal_uuid(self):
        assert not is_plausible_external_id('3f2504e0-4f89-11d3-9a0c-0305e82c3301', 'instagram')

    def test_rejects_handle(self):
        assert not is_plausible_external_id('@alice', 'tiktok')

    def test_rejects_whitespace(self):
        assert not is_plausible_external_id('alice smith')

    @pytest.mark.parametrize('value', [None, '', '   ', 12345])
    def test_rejects_empty_and_non_string(self, value):
        assert not is_plausible_external_id(value)

    def test_rejects_overlong_value(self):
        assert not is_plausible_external_id('9' * 129)

    def test_youtube_requires_channel_prefix(self):
        assert is_plausible_external_id('UCabc123XYZ', 'youtube')
        assert not is_plausible_external_id('alice_channel', 'youtube')

    def test_channel_prefix_only_applies_to_youtube(self):
        assert is_plausible_external_id('alice_channel', 'tiktok')

    def test_no_platform_skips_shape_rule(self):
        assert is_plausible_external_id('alice_channel')
