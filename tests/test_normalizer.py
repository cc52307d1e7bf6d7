"""Tests for the profile normalizer."""

from quotaledger.models import AuthContext, Tier, UserProfile
from quotaledger.normalizer import (
    build_document,
    changed_fields,
    normalize_profile,
    normalize_tasks,
)


TODAY = "2025-01-15"
YESTERDAY = "2025-01-14"


class TestNormalizeTasks:
    """Test task progress normalization."""

    def test_defaults(self):
        tasks = normalize_tasks(None, TODAY)
        assert tasks.instagram_done is False
        assert tasks.submissions_approved == 0
        assert tasks.shares_recorded_at is None

    def test_stale_shares_reset(self):
        """Test the lazy rollover resets yesterday's share counter."""
        tasks = normalize_tasks({"shares_today": 4, "shares_recorded_at": YESTERDAY}, TODAY)
        assert tasks.shares_today == 0
        assert tasks.shares_recorded_at is None

    def test_fresh_shares_kept(self):
        tasks = normalize_tasks({"shares_today": 4, "shares_recorded_at": TODAY}, TODAY)
        assert tasks.shares_today == 4
        assert tasks.shares_recorded_at == TODAY

    def test_corrupt_values_coerced(self):
        """Test bad stored types fall back to safe defaults."""
        tasks = normalize_tasks(
            {
                "instagram_done": "yes",
                "submissions_approved": -4,
                "invites_completed": 2.7,
                "shares_today": "many",
                "shares_recorded_at": TODAY,
            },
            TODAY,
        )
        assert tasks.instagram_done is False
        assert tasks.submissions_approved == 0
        assert tasks.invites_completed == 2
        assert tasks.shares_today == 0

    def test_legacy_field_names(self):
        """Test older camelCase task documents are understood."""
        tasks = normalize_tasks(
            {"instagram": True, "submissionsApproved": 2, "sharesToday": 1, "sharesRecordedAt": TODAY},
            TODAY,
        )
        assert tasks.instagram_done is True
        assert tasks.submissions_approved == 2
        assert tasks.shares_today == 1


class TestNormalizeProfile:
    """Test full profile normalization."""

    def test_fresh_guest(self):
        """Test a missing profile normalizes to the guest floor."""
        profile = normalize_profile("u1", None, Tier.GUEST, TODAY)
        assert profile.tier == Tier.GUEST
        assert profile.base_limit == 3
        assert profile.permanent_boost == 0
        assert profile.share_bonus == 0
        assert profile.daily_limit == 3

    def test_registered_with_boosts(self):
        stored = {
            "tier": "registered",
            "tasks": {
                "instagram_done": True,
                "threads_done": True,
                "shares_today": 2,
                "shares_recorded_at": TODAY,
            },
        }
        profile = normalize_profile("u1", stored, Tier.GUEST, TODAY)
        assert profile.permanent_boost == 10
        assert profile.share_bonus == 4
        assert profile.daily_limit == 24

    def test_pro_ignores_boosts(self):
        """Test pro users always get the fixed pro allowance."""
        stored = {
            "tier": "pro",
            "tasks": {"instagram_done": True, "submissions_approved": 9,
                      "shares_today": 5, "shares_recorded_at": TODAY},
        }
        profile = normalize_profile("u1", stored, Tier.GUEST, TODAY)
        assert profile.daily_limit == 200
        assert profile.base_limit == 200

    def test_low_stored_limit_healed(self):
        """Test a stored limit below what tasks justify is raised."""
        stored = {"tier": "registered", "daily_limit": 2, "tasks": {"instagram_done": True}}
        profile = normalize_profile("u1", stored, Tier.GUEST, TODAY)
        assert profile.daily_limit == 15

    def test_high_stored_limit_kept(self):
        """Test a stored limit above the computed value acts as a floor."""
        stored = {"tier": "registered", "daily_limit": 25}
        profile = normalize_profile("u1", stored, Tier.GUEST, TODAY)
        assert profile.daily_limit == 25
        assert profile.base_limit == 10
        assert profile.permanent_boost == 0

    def test_stale_share_bonus_cleared_but_limit_floored(self):
        """Test yesterday's bonus resets while the stored limit still floors today's."""
        stored = {
            "tier": "registered",
            "daily_limit": 20,
            "share_bonus": 10,
            "tasks": {"shares_today": 5, "shares_recorded_at": YESTERDAY},
        }
        profile = normalize_profile("u1", stored, Tier.GUEST, TODAY)
        assert profile.share_bonus == 0
        assert profile.daily_limit == 20

    def test_pro_ignores_stored_limit(self):
        """Test the pro allowance is fixed regardless of the stored value."""
        stored = {"tier": "pro", "daily_limit": 900}
        profile = normalize_profile("u1", stored, Tier.GUEST, TODAY)
        assert profile.daily_limit == 200

    def test_corrupt_stored_limit_ignored(self):
        stored = {"tier": "registered", "daily_limit": "lots"}
        profile = normalize_profile("u1", stored, Tier.GUEST, TODAY)
        assert profile.daily_limit == 10

    def test_stored_base_limit_not_trusted(self):
        stored = {"tier": "guest", "base_limit": 999}
        profile = normalize_profile("u1", stored, Tier.GUEST, TODAY)
        assert profile.base_limit == 3

    def test_guest_upgraded_by_live_auth(self):
        auth = AuthContext(user_id="u1", provider="google.com")
        profile = normalize_profile("u1", {"tier": "guest"}, Tier.REGISTERED, TODAY, auth)
        assert profile.tier == Tier.REGISTERED
        assert profile.daily_limit == 10

    def test_unknown_stored_tier_uses_default(self):
        profile = normalize_profile("u1", {"tier": "gold"}, Tier.REGISTERED, TODAY)
        assert profile.tier == Tier.REGISTERED


class TestDocuments:
    """Test document diffing and building."""

    def test_changed_fields_for_missing_profile(self):
        profile = normalize_profile("u1", None, Tier.GUEST, TODAY)
        diff = changed_fields(None, profile)
        assert diff["tier"] == "guest"
        assert diff["daily_limit"] == 3
        assert "updated_at" not in diff

    def test_no_changes_after_build(self):
        """Test a built document diffs clean against its own profile."""
        profile = normalize_profile("u1", None, Tier.GUEST, TODAY)
        doc = build_document(None, profile, "2025-01-15T12:00:00+00:00")
        again = normalize_profile("u1", doc, Tier.GUEST, TODAY)
        assert changed_fields(doc, again) == {}

    def test_build_keeps_unknown_fields(self):
        """Test fields owned by other features survive a rewrite."""
        stored = {"tier": "guest", "socialConnections": {"meta": None}}
        profile = normalize_profile("u1", stored, Tier.GUEST, TODAY)
        doc = build_document(stored, profile, "2025-01-15T12:00:00+00:00")
        assert doc["socialConnections"] == {"meta": None}
        assert doc["created_at"] == "2025-01-15T12:00:00+00:00"

    def test_profile_to_dict(self):
        profile = UserProfile(user_id="u1", tier=Tier.PRO, base_limit=200, daily_limit=200)
        data = profile.to_dict()
        assert data["tier"] == "pro"
        assert data["tasks"]["instagram_done"] is False
