from sf_broker.metrics import ApiUsage, PerAppUsage, Usage, parse_api_usage


def test_parse_api_usage_only():
    assert parse_api_usage("api-usage=18/5000") == ApiUsage(Usage(18, 5000), None)


def test_parse_per_app_usage():
    usage = parse_api_usage(
        "api-usage=25/5000; per-app-api-usage=17/250(appName=sample-connected-app)"
    )
    assert usage.api == Usage(25, 5000)
    assert usage.per_app == PerAppUsage(17, 250, "sample-connected-app")


def test_parse_unrecognised_header():
    assert parse_api_usage("something-else") == ApiUsage()
