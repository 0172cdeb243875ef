from provisioner.core.models import STATUS_ADOPTED, STATUS_CREATED, ProvisionOutcome, ResourceIdentity
from provisioner.core.report import RunReportBuilder


def outcome(name, status=STATUS_CREATED, kind="web", warnings=(), granted=False):
    return ProvisionOutcome(
        name=name,
        display_name=f"myapp-dev-{name}",
        kind=kind,
        identity=ResourceIdentity(f"obj-{name}", f"app-{name}", f"sp-{name}"),
        status=status,
        credential="secret",
        authorization_granted=granted,
        warnings=tuple(warnings),
    )


def test_summary_counts_created_and_adopted():
    builder = RunReportBuilder("req-1")
    builder.add_application(outcome("a", granted=True))
    builder.add_application(outcome("b", STATUS_ADOPTED))
    builder.add_enterprise(outcome("c", kind="enterprise-saml"))
    builder.add_error("d: create application failed: boom")

    report = builder.finalize()

    assert report.request_id == "req-1"
    assert report.success is True
    assert report.summary.applications_created == 1
    assert report.summary.applications_adopted == 1
    assert report.summary.enterprise_created == 1
    assert report.summary.enterprise_adopted == 0
    assert report.summary.authorizations_granted == 1
    assert report.summary.errors == 1


def test_outcome_warnings_are_collected_in_order():
    builder = RunReportBuilder()
    builder.add_application(outcome("a", warnings=["first"]))
    builder.add_warning("second")
    builder.add_enterprise(outcome("b", warnings=["third"]))

    assert builder.finalize().warnings == ("first", "second", "third")


def test_request_id_is_generated():
    assert len(RunReportBuilder().request_id) == 36


def test_finalize_is_idempotent():
    builder = RunReportBuilder()
    first = builder.finalize()
    builder.add_error("late")

    assert builder.finalize() is first
    assert first.errors == ()


def test_cancellation_is_recorded():
    builder = RunReportBuilder()
    builder.mark_cancelled("myapp-dev-b")

    report = builder.finalize()

    assert report.cancelled
    assert report.success
    assert "Run cancelled before 'myapp-dev-b'" in report.warnings[0]


def test_to_dict_shape():
    builder = RunReportBuilder("req-2")
    builder.add_application(outcome("a"))

    data = builder.finalize(success=False).to_dict()

    assert list(data) == [
        "requestId", "success", "cancelled", "durationMs", "applications",
        "enterpriseApplications", "errors", "warnings", "summary",
    ]
    assert data["success"] is False
    app = data["applications"][0]
    assert app["displayName"] == "myapp-dev-a"
    assert app["appId"] == "app-a"
    assert app["principalId"] == "sp-a"
    assert app["status"] == "created"
    assert data["summary"]["applicationsCreated"] == 1
