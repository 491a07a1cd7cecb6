from datetime import datetime, timezone
from unittest.mock import MagicMock, patch

from exam_portal.access import PlanRow, SubscriptionRow, UserAccess, resolve_access

PLANS = [PlanRow(id="p-gold", name="gold"), PlanRow(id="p-ahc", name="ahc"), PlanRow(id="p-x", name="trial")]


def _source(subscriptions, plans=PLANS):
    source = MagicMock()
    source.active_subscriptions.return_value = subscriptions
    source.all_plans.return_value = plans
    return source


def _sub(plan_id, status="active"):
    return SubscriptionRow(plan_id=plan_id, status=status, expires_at=datetime(2030, 1, 1, tzinfo=timezone.utc))


class TestResolveAccess:
    def test_anonymous_is_closed_without_lookup(self):
        source = _source([])
        assert resolve_access(source, None) == UserAccess.closed()
        assert resolve_access(source, "") == UserAccess.closed()
        source.active_subscriptions.assert_not_called()

    def test_backend_error_collapses_to_closed(self):
        source = MagicMock()
        source.active_subscriptions.side_effect = RuntimeError("connection refused")
        access = resolve_access(source, "u1")
        assert access == UserAccess.closed()
        assert access.specific_grants == ()

    def test_plan_lookup_error_collapses_to_closed(self):
        source = _source([_sub("p-ahc")])
        source.all_plans.side_effect = TimeoutError()
        assert resolve_access(source, "u1") == UserAccess.closed()

    def test_gold_is_standard(self):
        access = resolve_access(_source([_sub("p-gold")]), "u1")
        assert access.has_standard_plan is True
        assert access.has_premium_plan is False

    def test_ahc_is_premium(self):
        access = resolve_access(_source([_sub("p-ahc")]), "u1")
        assert access.has_premium_plan is True
        assert access.has_standard_plan is False

    def test_both_plans(self):
        access = resolve_access(_source([_sub("p-ahc"), _sub("p-gold")]), "u1")
        assert access.has_premium_plan and access.has_standard_plan

    def test_inactive_and_unknown_plans_ignored(self):
        access = resolve_access(
            _source([_sub("p-ahc", status="expired"), _sub("p-x"), _sub("p-missing")]),
            "u1",
        )
        assert access == UserAccess.closed()

    def test_never_yields_specific_grants(self):
        access = resolve_access(_source([_sub("p-gold")]), "u1")
        assert access.specific_grants == ()

    def test_plan_names_from_config(self):
        with patch("exam_portal.access.resolver.get_premium_plan_name", return_value="trial"):
            access = resolve_access(_source([_sub("p-x")]), "u1")
        assert access.has_premium_plan is True
