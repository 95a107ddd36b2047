"""Tests for the report composer, client advisor, and GMB audit views."""

import pytest

from conftest import kw


@pytest.fixture()
def scans(portfolio_payloads):
    from localrank.models.scan import ScanRecord
    return [ScanRecord.from_api(p) for p in portfolio_payloads]


@pytest.fixture()
def details(scans):
    """Latest-scan details keyed by business name."""
    by_uuid = {s.uuid: s for s in scans}
    return {
        "Acme": by_uuid["acme-2"],
        "Bolt Electric": by_uuid["bolt-2"],
        "Corner Cafe": by_uuid["cafe-1"],
    }


@pytest.fixture()
def composer():
    from localrank.modules.portfolio.composer import ReportComposer
    return ReportComposer()


# ===========================================================================
# 1. Portfolio summary
# ===========================================================================
class TestPortfolioSummary:

    def test_counts_and_average(self, composer, scans):
        summary = composer.portfolio_summary(scans)
        assert summary["total_clients"] == 3
        assert summary["total_scans"] == 5
        assert (summary["improving"], summary["declining"], summary["stable"], summary["new"]) == (1, 1, 0, 1)
        assert summary["avg_rank_across_portfolio"] == 8.4

    def test_clients_sorted_declining_first(self, composer, scans):
        clients = composer.portfolio_summary(scans)["clients"]
        assert [(c["name"], c["status"]) for c in clients] == [
            ("Bolt Electric", "declining"),
            ("Acme", "improving"),
            ("Corner Cafe", "new"),
        ]

    def test_change_is_null_for_new_clients(self, composer, scans):
        clients = {c["name"]: c for c in composer.portfolio_summary(scans)["clients"]}
        assert clients["Acme"]["change"] == 4.3
        assert clients["Bolt Electric"]["change"] == -5.9
        assert clients["Corner Cafe"]["change"] is None

    def test_view_url_only_with_share_token(self, composer, scans):
        clients = {c["name"]: c for c in composer.portfolio_summary(scans)["clients"]}
        assert clients["Acme"]["view_url"] == "https://app.localrank.so/share/tok-acme"
        assert "view_url" not in clients["Bolt Electric"]

    def test_empty_portfolio(self, composer):
        summary = composer.portfolio_summary([])
        assert summary["total_clients"] == 0
        assert summary["avg_rank_across_portfolio"] is None
        assert summary["clients"] == []

    def test_custom_share_base(self, scans):
        from localrank.modules.portfolio.composer import ReportComposer

        composer = ReportComposer(share_base="https://share.example.com/")
        rows = {c["name"]: c for c in composer.portfolio_summary(scans)["clients"]}
        assert rows["Acme"]["view_url"] == "https://share.example.com/share/tok-acme"


# ===========================================================================
# 2. Client report
# ===========================================================================
class TestClientReport:

    def test_report_with_details(self, composer, scans):
        acme = [s for s in scans if s.business_name == "Acme"]
        latest, previous = acme[0], acme[1]
        report = composer.client_report(acme, latest, previous)

        assert report["business_name"] == "Acme"
        assert report["status"] == "improving"
        assert report["change"] == 4.3
        assert report["total_scans"] == 2
        assert report["latest_scan"]["avg_rank"] == 4.2
        assert report["latest_scan"]["keywords"][0] == {
            "keyword": "plumber near me", "avg_rank": 4.2, "best_rank": 2.0,
        }
        assert report["wins"] == [{"keyword": "plumber near me", "from": 8.5, "to": 4.2, "improved_by": 4.3}]
        assert report["drops"] == [{"keyword": "emergency plumber", "from": 12.0, "to": 13.0, "dropped_by": 1.0}]
        assert report["view_url"].endswith("/share/tok-acme")
        assert "warnings" not in report

    def test_report_without_details_skips_keyword_changes(self, composer, scans):
        acme = [s for s in scans if s.business_name == "Acme"]
        report = composer.client_report(acme, None, None, warnings=["Skipped acme-2: boom"])
        assert report["wins"] == [] and report["drops"] == []
        assert report["warnings"] == ["Skipped acme-2: boom"]

    def test_single_scan_report(self, composer, scans):
        cafe = [s for s in scans if s.business_name == "Corner Cafe"]
        report = composer.client_report(cafe, cafe[0])
        assert report["status"] == "new"
        assert report["change"] is None
        assert report["wins"] == [] and report["drops"] == []
        assert "view_url" not in report

    def test_no_scans_returns_none(self, composer):
        assert composer.client_report([]) is None


# ===========================================================================
# 3. Priorities, quick wins, at-risk
# ===========================================================================
class TestPrioritizeToday:

    def test_buckets(self, composer, scans, details):
        result = composer.prioritize_today(scans, details)
        priorities = result["priorities"]
        assert [i["client"] for i in priorities["urgent"]] == ["Bolt Electric"]
        assert [i["client"] for i in priorities["important"]] == ["Bolt Electric"]
        assert [(i["client"], i["keyword"]) for i in priorities["quick_wins"]] == [
            ("Acme", "emergency plumber"),
            ("Bolt Electric", "ev charger install"),
        ]
        assert result["tip"] == "Start with urgent items, then quick wins for momentum"

    def test_missing_details_skip_quick_wins(self, composer, scans):
        result = composer.prioritize_today(scans, {}, warnings=["Skipped Acme: timed out after 20.0s"])
        assert result["priorities"]["quick_wins"] == []
        assert result["warnings"] == ["Skipped Acme: timed out after 20.0s"]


class TestQuickWins:

    def test_sorted_with_opportunity(self, composer, details):
        result = composer.quick_wins(details)
        assert [(w["keyword"], w["current_rank"], w["opportunity"]) for w in result["quick_wins"]] == [
            ("ev charger install", 11.0, "High"),
            ("emergency plumber", 13.0, "High"),
            ("electrician", 18.0, "Medium"),
        ]
        assert result["total"] == 3
        assert "page 1" in result["tip"]

    def test_truncates_to_twenty_but_counts_all(self, composer, make_scan):
        detail = make_scan("s1", "Acme", 9.0, keyword_results=[
            kw("kw " + str(i), 11 + (i % 10)) for i in range(25)
        ])
        result = composer.quick_wins({"Acme": detail})
        assert len(result["quick_wins"]) == 20
        assert result["total"] == 25
        ranks = [w["current_rank"] for w in result["quick_wins"]]
        assert ranks == sorted(ranks)


class TestAtRisk:

    def test_at_risk_report(self, composer, scans):
        result = composer.at_risk(scans)
        assert result["at_risk_clients"] == [
            {
                "business_name": "Bolt Electric",
                "risk_score": 3,
                "risk_factors": ["Rankings dropped from 6.2 to 12.1"],
                "action": "Reach out proactively",
            },
            {
                "business_name": "Corner Cafe",
                "risk_score": 1,
                "risk_factors": ["Only 1 scan - low engagement"],
                "action": "Reach out proactively",
            },
        ]
        assert result["tip"] == "Contact these clients before they churn"


class TestScanViews:

    def test_scan_summary(self, composer, scans):
        row = composer.scan_summary(scans[0])
        assert row["uuid"] == "acme-2"
        assert row["keywords"] == ["plumber near me", "emergency plumber"]
        assert row["created_at"].startswith("2026-03-01")
        assert row["view_url"].endswith("tok-acme")

    def test_scan_detail(self, composer, scans):
        detail = composer.scan_detail(scans[1])
        assert "view_url" not in detail
        assert detail["keywords"][0] == {
            "keyword": "electrician", "avg_rank": 18.0, "best_rank": 12.0, "found_count": 1,
        }


# ===========================================================================
# 4. Client advisor
# ===========================================================================
class TestClientAdvisor:

    @pytest.fixture()
    def advisor(self):
        from localrank.modules.advisor import ClientAdvisor
        return ClientAdvisor()

    def test_superboost_for_poor_rank(self, advisor, make_scan):
        scan = make_scan("s1", "Acme", 12.1, keywords=["a", "b", "c", "d", "e"])
        result = advisor.recommend([scan])
        assert [r["product"] for r in result["recommendations"]] == ["SuperBoost"]
        assert result["current_avg_rank"] == 12.1

    def test_localboost_and_more_keywords(self, advisor, make_scan):
        scan = make_scan("s1", "Acme", 7.0, keywords=["a", "b"])
        actions = [r["action"] for r in advisor.recommend([scan])["recommendations"]]
        assert actions == ["Use LocalBoost", "Track more keywords"]

    def test_maintain_when_ranking_well(self, advisor, make_scan):
        scan = make_scan("s1", "Acme", 3.0, keywords=["a", "b", "c", "d", "e"])
        recs = advisor.recommend([scan])["recommendations"]
        assert recs == [{
            "action": "Maintain with LocalBoost",
            "product": "LocalBoost",
            "reason": "Great rankings (avg 3)! Maintain authority.",
        }]

    def test_no_scans(self, advisor):
        assert advisor.recommend([]) == {
            "recommendations": [{"action": "Run first scan", "product": "Rank Tracker"}],
        }

    def test_update_fields_improved(self, advisor, scans):
        acme = [s for s in scans if s.business_name == "Acme"]
        fields = advisor.update_fields(acme)
        assert fields == {
            "business_name": "Acme",
            "avg_rank": 4.2,
            "keywords_tracked": 2,
            "change": 4.3,
            "direction": "improved",
            "view_url": "https://app.localrank.so/share/tok-acme",
        }

    def test_update_fields_dropped(self, advisor, scans):
        bolt = [s for s in scans if s.business_name == "Bolt Electric"]
        fields = advisor.update_fields(bolt)
        assert (fields["change"], fields["direction"]) == (5.9, "dropped")
        assert "view_url" not in fields

    def test_update_fields_single_scan(self, advisor, scans):
        cafe = [s for s in scans if s.business_name == "Corner Cafe"]
        fields = advisor.update_fields(cafe)
        assert fields["change"] is None and fields["direction"] is None

    def test_update_fields_no_scans(self, advisor):
        assert advisor.update_fields([]) is None


# ===========================================================================
# 5. GMB audit views
# ===========================================================================
class TestAuditViews:

    def test_submission_view(self):
        from localrank.models.audit import AuditSubmission
        from localrank.modules.gmb_audit import submission_view

        view = submission_view(AuditSubmission.from_api({
            "audit_id": "aud-1", "status": "pending", "credits_deducted": 500,
        }))
        assert view["audit_id"] == "aud-1"
        assert view["credits_deducted"] == 500
        assert "audit:get" in view["tip"]

    def test_pending_audit_hides_results(self):
        from localrank.models.audit import AuditResult
        from localrank.modules.gmb_audit import audit_view

        view = audit_view(AuditResult.from_api({"audit_id": "aud-1", "status": "processing"}))
        assert view == {"audit_id": "aud-1", "status": "processing", "business_name": None}

    def test_completed_audit_caps_issues(self):
        from localrank.models.audit import AuditResult
        from localrank.modules.gmb_audit import audit_view

        view = audit_view(AuditResult.from_api({
            "audit_id": "aud-1",
            "status": "completed",
            "business_name": "Acme",
            "audit_score": 72,
            "review_stats": {"count": 40},
            "revenue_impact": {"monthly": 1200},
            "issues_identified": ["issue " + str(i) for i in range(14)],
        }))
        assert view["audit_score"] == 72
        assert len(view["issues_identified"]) == 10
        assert view["issues_identified"][0] == "issue 0"
