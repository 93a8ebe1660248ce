"""Tests for the connection checks."""

import asyncio

import httpx

from conftest import mock_client
from gazette.models.subscription import AIProvider, GazetteConfig
from gazette.utils.health import HEALTHY, NOT_CONFIGURED, UNHEALTHY, HealthChecker


def github_ok(request):
    if request.url.path == "/user":
        return httpx.Response(200, json={"login": "octocat"})
    if request.url.path == "/rate_limit":
        return httpx.Response(200, json={"resources": {"core": {"remaining": 4321}}})
    return httpx.Response(200, json={"data": []})


def test_github_healthy(settings):
    result = asyncio.run(HealthChecker(settings, client=mock_client(github_ok)).check_github())

    assert result == {"status": HEALTHY, "user": "octocat", "rate_limit_remaining": 4321}


def test_github_bad_token(settings):
    checker = HealthChecker(settings, client=mock_client(lambda request: httpx.Response(401)))

    result = asyncio.run(checker.check_github())

    assert result["status"] == UNHEALTHY
    assert "authentication failed" in result["error"]


def test_github_not_configured(settings):
    settings.github_token = None

    assert asyncio.run(HealthChecker(settings).check_github())["status"] == NOT_CONFIGURED


def test_jira_not_configured(settings):
    assert asyncio.run(HealthChecker(settings).check_jira())["status"] == NOT_CONFIGURED


def test_jira_healthy(settings):
    settings.jira_base_url = "https://jira.acme.io"
    settings.jira_email = "dev@acme.io"
    settings.jira_api_token = "tok"
    seen = []

    def handler(request):
        seen.append(request.url.path)
        return httpx.Response(200, json={"displayName": "Dev"})

    result = asyncio.run(HealthChecker(settings, client=mock_client(handler)).check_jira())

    assert seen == ["/rest/api/2/myself"]
    assert result == {"status": HEALTHY, "user": "Dev", "deployment": "data_center"}


def test_llm_rejected_key(settings):
    checker = HealthChecker(settings, client=mock_client(lambda request: httpx.Response(401)))

    result = asyncio.run(checker.check_llm(AIProvider.OPENAI))

    assert result["status"] == UNHEALTHY
    assert "rejected the API key" in result["error"]


def test_llm_missing_key(settings):
    settings.anthropic_api_key = None

    result = asyncio.run(HealthChecker(settings).check_llm(AIProvider.ANTHROPIC))

    assert result == {"status": NOT_CONFIGURED, "error": "ANTHROPIC_API_KEY is not set"}


def test_comprehensive_check_without_jira(settings):
    checker = HealthChecker(settings, client=mock_client(github_ok))

    report = asyncio.run(checker.comprehensive_health_check(GazetteConfig()))

    assert report["overall_status"] == HEALTHY
    assert report["services"]["jira"]["status"] == NOT_CONFIGURED
    assert report["services"]["llm"]["status"] == HEALTHY


def test_comprehensive_check_runs_one_request_at_a_time(settings):
    settings.jira_base_url = "https://acme.atlassian.net"
    settings.jira_email = "dev@acme.io"
    settings.jira_api_token = "tok"
    in_flight = {"now": 0, "max": 0}
    hosts = []

    async def handler(request):
        in_flight["now"] += 1
        in_flight["max"] = max(in_flight["max"], in_flight["now"])
        hosts.append(request.url.host)
        await asyncio.sleep(0)
        in_flight["now"] -= 1
        if request.url.path == "/rest/api/3/myself":
            return httpx.Response(200, json={"displayName": "Dev"})
        return github_ok(request)

    checker = HealthChecker(settings, client=mock_client(handler))

    report = asyncio.run(checker.comprehensive_health_check(GazetteConfig()))

    assert in_flight["max"] == 1
    assert hosts[-2:] == ["acme.atlassian.net", "generativelanguage.googleapis.com"]
    assert report["overall_status"] == HEALTHY
    assert report["services"]["jira"] == {"status": HEALTHY, "user": "Dev", "deployment": "cloud"}
