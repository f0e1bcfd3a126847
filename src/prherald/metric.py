import re

from prometheus_client import Counter

request_counter = Counter(
    "prherald_num_req", "Total number of requests", labelnames=["path"]
)
webhook_counter = Counter(
    "prherald_num_webhook", "Total number of webhooks", labelnames=["event", "action"]
)
webhook_skipped_counter = Counter(
    "prherald_num_webhook_skipped",
    "Total number of skipped webhooks",
    labelnames=["event", "reason"],
)

comment_counter = Counter(
    "prherald_num_comment", "Number of PR comments posted", labelnames=["result"]
)

notification_counter = Counter(
    "prherald_num_notification",
    "Number of Teams notifications sent",
    labelnames=["result"],
)

resolver_error_counter = Counter(
    "prherald_num_resolver_error",
    "Number of failed project lookups",
    labelnames=["strategy"],
)

error_counter = Counter(
    "prherald_error_counter", "Total number of errors", labelnames=["context"]
)

api_call_count = Counter(
    "prherald_num_api_calls",
    "Total number of GitHub API calls",
    labelnames=["endpoint"],
)


def _normalize_api_endpoint(endpoint: str) -> str:
    if endpoint == "graphql" or endpoint.endswith("/graphql"):
        return "graphql"
    if re.search(r"/app/installations/\d+/access_tokens$", endpoint):
        return "installation_token"
    if re.search(r"/issues/\d+/comments$", endpoint):
        return "issue_comments"
    if re.search(r"/pulls/\d+$", endpoint):
        return "pulls"
    if re.fullmatch(r"/repos/[^/]+/[^/]+", endpoint):
        return "repos"
    return "other"


def record_api_call(endpoint: str) -> None:
    api_call_count.labels(endpoint=_normalize_api_endpoint(endpoint)).inc()
