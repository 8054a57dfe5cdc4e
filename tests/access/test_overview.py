"""Access overview for the universe page: locked flags from the viewer tier, preview flags apart."""
from studio.access.models import ViewerAccess
from studio.access.overview import build_access_overview
from studio.access.tiers import AccessTier, PreviewTier


def _access(viewer, preview=None):
    return ViewerAccess(viewer_tier=viewer, preview_tier=PreviewTier(preview or viewer))


class TestAccessOverview:
    def test_priority_viewer_previewing_packaging(self, universe_pages):
        overview = build_access_overview("u1", _access(AccessTier.PRIORITY, AccessTier.PACKAGING), universe_pages)

        assert overview.viewer_tier == "priority"
        assert overview.preview_tier == "packaging"
        assert overview.vault_allowed is False
        assert overview.vault_locked_count == 1
        assert [p.page_type for p in overview.pages] == [
            "logline",
            "beat_sheet",
            "series_bible",
            "chain_of_title_rights_matrix",
        ]
        assert [p.locked for p in overview.pages] == [False, False, True, True]
        assert not any(p.preview_locked for p in overview.pages)

    def test_vault_pages_listed_for_packaging(self, universe_pages):
        overview = build_access_overview("u1", _access(AccessTier.PACKAGING), universe_pages)
        assert overview.vault_allowed is True
        assert overview.vault_locked_count == 0
        assert overview.pages[-1].page_type == "deal_memo"
        assert not any(p.locked for p in overview.pages)

    def test_vault_titles_hidden_from_lower_tiers(self, universe_pages):
        overview = build_access_overview("u1", _access(AccessTier.PRODUCER), universe_pages)
        assert "page-deal_memo" not in [p.id for p in overview.pages]

    def test_drafts_not_listed(self, universe_pages):
        overview = build_access_overview("u1", _access(AccessTier.PACKAGING), universe_pages)
        assert "timeline" not in [p.page_type for p in overview.pages]
