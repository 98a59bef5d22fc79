"""Tests for activity normalization and artwork resolution."""

from __future__ import annotations

import pytest

from switch_presence.activity import (
    HOME_MENU_ID,
    ActivityNormalizer,
    Category,
    format_title_id,
)
from switch_presence.config import PresenceConfig


@pytest.fixture
def normalizer(probe):
    n = ActivityNormalizer.from_config(PresenceConfig(), probe)
    n._clock = lambda: 1_700_000_000.5
    return n


class TestNormalize:
    def test_zero_becomes_home_menu(self, normalizer):
        record = normalizer.normalize(0, "whatever bytes")
        assert record.title_id == HOME_MENU_ID
        assert record.display_name == "Home Menu"
        assert record.started_at is None
        assert record.is_home

    def test_home_id_has_no_start_time(self, normalizer):
        assert normalizer.normalize(HOME_MENU_ID, "qlaunch").started_at is None

    def test_game_captures_start_time(self, normalizer):
        record = normalizer.normalize(0x0100000000010000, "Test Game")
        assert record.display_name == "Test Game"
        assert record.category is Category.PLAYING
        assert record.started_at == 1_700_000_000_500
        assert record.artwork_ref is None
        assert not record.is_home

    def test_strips_nul_padding(self, normalizer):
        assert normalizer.normalize(1, "Foo\x00\x00bar").display_name == "Foo"

    def test_renormalize_is_stable(self, normalizer):
        a = normalizer.normalize(0x0100000000010000, "YouTube")
        b = normalizer.normalize(0x0100000000010000, "YouTube")
        assert (a.title_id, a.display_name, a.category) == (b.title_id, b.display_name, b.category)


class TestClassify:
    @pytest.mark.parametrize("name", ["YouTube", "youtube", "YOUTUBE Kids", "Crunchyroll", "switchfin"])
    def test_watching(self, normalizer, name):
        assert normalizer.classify(name) is Category.WATCHING

    def test_playing(self, normalizer):
        assert normalizer.classify("Some RPG") is Category.PLAYING

    def test_first_rule_wins(self, probe):
        n = ActivityNormalizer(probe, watching_apps=["tube"])
        assert n.classify("MeTube") is Category.WATCHING
        assert n.classify("Zelda") is Category.PLAYING


class TestResolveArtwork:
    async def test_override_skips_probe(self, normalizer, probe):
        ref = await normalizer.resolve_artwork(0x0500000000000001, "RetroArch 1.19")
        assert ref == "https://gbatemp.net/attachments/retroarch-jpg.266593/"
        probe.probe.assert_not_awaited()

    async def test_override_is_case_insensitive(self, normalizer, probe):
        ref = await normalizer.resolve_artwork(1, "homebrew menu")
        assert ref.endswith("nx-hbmenu/refs/heads/master/icon.jpg")
        probe.probe.assert_not_awaited()

    async def test_probe_with_hex_id(self, normalizer, probe):
        ref = await normalizer.resolve_artwork(0x0100000000010000, "Test Game")
        probe.probe.assert_awaited_once_with("0100000000010000")
        assert ref == "https://art.test/0100000000010000"

    async def test_remapped_id(self, normalizer, probe):
        await normalizer.resolve_artwork(0x05003A400C3DA000, "Some Update")
        probe.probe.assert_awaited_once_with("01003A400C3DA000")


class TestFormatTitleId:
    def test_padding_and_case(self):
        assert format_title_id(0x1AB) == "00000000000001AB"
        assert format_title_id(HOME_MENU_ID) == "0100000000001000"
