from samgov_intel.core.logging import SERVICE_NAME, service_context


def test_events_are_tagged_with_service_and_environment():
    add_context = service_context("production")

    event = add_context(None, "info", {"event": "Sync completed"})

    assert event["service"] == SERVICE_NAME
    assert event["environment"] == "production"


def test_explicit_context_is_not_overwritten():
    add_context = service_context("production")

    event = add_context(None, "info", {"event": "Sync completed", "service": "scheduler"})

    assert event["service"] == "scheduler"
