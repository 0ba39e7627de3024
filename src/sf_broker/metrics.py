"""
Parsing of the API usage figures Salesforce reports on every response.
"""

import re
import typing


class Usage(typing.NamedTuple):
    used: int
    total: int


class PerAppUsage(typing.NamedTuple):
    used: int
    total: int
    name: str


class ApiUsage(typing.NamedTuple):
    api: Usage | None = None
    per_app: PerAppUsage | None = None


_API_USAGE = re.compile(r"(?:^|[;\s])api-usage=(\d+)/(\d+)")
_PER_APP_USAGE = re.compile(r"per-app-api-usage=(\d+)/(\d+)\(appName=([^)]+)\)")


def parse_api_usage(sforce_limit_info: str) -> ApiUsage:
    """
    Parse the ``Sforce-Limit-Info`` response header.

    Examples:
        'api-usage=18/5000'
        'api-usage=25/5000; per-app-api-usage=17/250(appName=sample-connected-app)'
    """
    api = per_app = None
    if match := _API_USAGE.search(sforce_limit_info):
        api = Usage(int(match[1]), int(match[2]))
    if match := _PER_APP_USAGE.search(sforce_limit_info):
        per_app = PerAppUsage(int(match[1]), int(match[2]), match[3])
    return ApiUsage(api, per_app)
