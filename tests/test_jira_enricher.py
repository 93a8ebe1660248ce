"""Tests for ticket key extraction and Jira enrichment."""

import asyncio
from datetime import datetime, timezone

from gazette.exceptions import APIError, AuthError
from gazette.models.changelog import JiraTicket, PullRequest
from gazette.services.jira_enricher import JiraEnricher, extract_ticket_keys

MERGED = datetime(2024, 5, 20, 10, 0, tzinfo=timezone.utc)


def make_pr(number, title, body=None):
    return PullRequest(
        number=number,
        title=title,
        body=body,
        merged_at=MERGED,
        html_url=f"https://github.com/acme/backend/pull/{number}",
    )


class FakeJiraClient:
    """Records lookups and answers from a fixed table."""

    def __init__(self, tickets=None, errors=None):
        self.tickets = tickets or {}
        self.errors = errors or {}
        self.calls = []

    async def get_issue(self, key):
        self.calls.append(key)
        if key in self.errors:
            raise self.errors[key]
        summary = self.tickets.get(key)
        if summary is None:
            return None
        return JiraTicket(key=key, summary=summary, url=f"https://acme.atlassian.net/browse/{key}")


def test_extract_ticket_keys_dedupes_in_order():
    text = "ABC-12: fix login (see ABC-12 and XYZ-7)"
    assert extract_ticket_keys(text) == ["ABC-12", "XYZ-7"]


def test_extract_ticket_keys_ignores_non_keys():
    assert extract_ticket_keys("utf-8 handling, abc-12, A-1, X1-") == []
    assert extract_ticket_keys("") == []


def test_extract_ticket_keys_custom_pattern():
    assert extract_ticket_keys("PROJ-1 and OPS-2", pattern=r"\bOPS-\d+\b") == ["OPS-2"]


def test_each_ticket_fetched_once():
    jira = FakeJiraClient(tickets={"ABC-12": "Login", "XYZ-7": "Leak"})
    prs = [
        make_pr(1, "ABC-12 add login", body="Follow-up of ABC-12"),
        make_pr(2, "Fix leak", body="Fixes XYZ-7, related to ABC-12"),
    ]

    contexts = asyncio.run(JiraEnricher(jira).enrich(prs))

    assert sorted(jira.calls) == ["ABC-12", "XYZ-7"]
    assert [t.key for t in contexts[0].tickets] == ["ABC-12"]
    assert [t.key for t in contexts[1].tickets] == ["XYZ-7", "ABC-12"]


def test_without_client_enrichment_is_skipped():
    prs = [make_pr(1, "ABC-12 add login")]

    enricher = JiraEnricher(None)
    contexts = asyncio.run(enricher.enrich(prs))

    assert not enricher.enabled
    assert len(contexts) == 1
    assert contexts[0].pull_request.number == 1
    assert contexts[0].tickets == []


def test_unknown_and_failing_keys_are_omitted():
    jira = FakeJiraClient(
        tickets={"ABC-12": "Login"},
        errors={"BAD-1": APIError("boom", status_code=400)},
    )
    prs = [make_pr(1, "ABC-12 NOPE-3 BAD-1"), make_pr(2, "BAD-1 again")]

    contexts = asyncio.run(JiraEnricher(jira).enrich(prs))

    assert [t.key for t in contexts[0].tickets] == ["ABC-12"]
    assert contexts[1].tickets == []
    assert jira.calls.count("BAD-1") == 1


def test_auth_error_disables_rest_of_run():
    jira = FakeJiraClient(errors={"ABC-12": AuthError("denied", status_code=401)}, tickets={"XYZ-7": "Leak"})
    prs = [make_pr(1, "ABC-12"), make_pr(2, "XYZ-7")]

    contexts = asyncio.run(JiraEnricher(jira).enrich(prs))

    assert jira.calls == ["ABC-12"]
    assert all(ctx.tickets == [] for ctx in contexts)
    assert [ctx.pull_request.number for ctx in contexts] == [1, 2]
