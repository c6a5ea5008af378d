"""
Tests for FCC Medi Ambient dispatch
"""
import json
import logging

import httpx
import pytest

from gironaneta.core.errors import InvalidTransitionError, UpstreamError, ValidationError
from gironaneta.database.models import ReportStatus
from gironaneta.dispatch.dispatcher import DispatchAdapter
from gironaneta.dispatch.fcc_client import (
    DispatchFailure,
    DispatchSuccess,
    FailureCode,
    FCCClient,
    build_fields,
    build_observations,
    parse_fcc_response,
)
from gironaneta.workflow.lifecycle import ReportLifecycle


class TestParseFCCResponse:
    """Test suite for agency response interpretation."""

    def test_incident_id(self):
        outcome = parse_fcc_response(200, '{"altainc": "12345"}')
        assert outcome == DispatchSuccess(incident_id="12345")

    def test_resultado_fallback(self):
        outcome = parse_fcc_response(200, '{"resultado": 1, "mensaje": ""}')
        assert outcome == DispatchSuccess(incident_id="1")

    def test_success_without_id(self):
        assert parse_fcc_response(200, "{}") == DispatchSuccess(incident_id=None)

    def test_agency_error(self):
        outcome = parse_fcc_response(200, '{"id": "E000", "name": "Adreça no vàlida"}')
        assert isinstance(outcome, DispatchFailure)
        assert outcome.code == FailureCode.AGENCY_ERROR
        assert outcome.message == "FCC error: Adreça no vàlida"

    def test_agency_error_without_name(self):
        outcome = parse_fcc_response(200, '{"id": "E000"}')
        assert outcome.message == 'FCC error: {"id": "E000"}'

    def test_http_error_excerpt(self):
        outcome = parse_fcc_response(503, "<html>" + "x" * 500)
        assert outcome.code == FailureCode.HTTP_STATUS
        assert outcome.message.startswith("FCC error (503): <html>")
        assert len(outcome.message) == len("FCC error (503): ") + 200

    def test_not_json(self):
        outcome = parse_fcc_response(200, "OK")
        assert outcome.code == FailureCode.INVALID_RESPONSE

    def test_json_not_object(self):
        outcome = parse_fcc_response(200, '["12345"]')
        assert outcome.code == FailureCode.INVALID_RESPONSE


class TestSubmissionFields:
    """Test suite for incident card assembly."""

    async def test_fields(self, report_factory):
        report = await report_factory(category="litter", description="Bosses al costat del contenidor")
        fields = build_fields(report, f"info+{report.id}@gironaneta.cat")

        assert (fields["type"], fields["ambit"], fields["option"]) == ("009", "000", "211")
        assert fields["email"] == f"info+{report.id}@gironaneta.cat"
        assert fields["address"] == "41.980000, 2.822000"
        assert fields["lat"] == "41.98"
        assert fields["lng"] == "2.822"
        assert fields["filename"] == "foto_1.jpg"

    async def test_address_label_preferred(self, report_factory):
        report = await report_factory(address_label="Plaça Catalunya, Girona")
        fields = build_fields(report, "info+x@gironaneta.cat")
        assert fields["address"] == "Plaça Catalunya, Girona"

    async def test_observations(self, report_factory):
        report = await report_factory(description="Matalàs")
        assert build_observations(report) == f"[Residus a la via pública]\nMatalàs\n\nRef: {report.id}"

    async def test_observations_without_description(self, report_factory):
        report = await report_factory()
        assert build_observations(report) == f"[Residus a la via pública]\n\nRef: {report.id}"


class TestDispatchAdapter:
    """Test suite for DispatchAdapter."""

    @pytest.fixture(autouse=True)
    def setup(self, session, repository, blob_store):
        self.session = session
        self.repository = repository
        self.blob_store = blob_store
        self.requests = []

    def adapter(self, handler) -> DispatchAdapter:
        def recording_handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return handler(request)

        client = FCCClient(
            api_url="https://fcc.test/apprest/app-tarjeta-submit",
            transport=httpx.MockTransport(recording_handler),
        )
        return DispatchAdapter(
            self.session,
            ReportLifecycle(self.repository),
            self.blob_store,
            client,
        )

    async def test_success(self, report_factory):
        """Test a successful dispatch ends in sent with the incident id."""
        report = await report_factory()
        adapter = self.adapter(lambda r: httpx.Response(200, json={"altainc": "12345"}))

        result = await adapter.dispatch(report.id)

        assert result.success is True
        assert result.to_dict() == {
            "success": True,
            "report_id": report.id,
            "external_correlation_id": "12345",
        }

        stored = await self.repository.get_report(report.id)
        assert stored.status == ReportStatus.SENT
        assert stored.fcc_incident_id == "12345"
        assert stored.sent_at is not None

    async def test_multipart_request(self, report_factory):
        report = await report_factory()
        adapter = self.adapter(lambda r: httpx.Response(200, json={"altainc": "1"}))

        await adapter.dispatch(report.id)

        assert len(self.requests) == 1
        request = self.requests[0]
        assert request.method == "POST"
        assert request.headers["content-type"].startswith("multipart/form-data")
        body = request.content
        assert b'name="file"; filename="foto_1.jpg"' in body
        assert f"info+{report.id}@gironaneta.cat".encode() in body
        assert b"\xff\xd8\xff" in body

    async def test_agency_error_reverts(self, report_factory):
        """Test an agency rejection puts the report back in review."""
        report = await report_factory()
        adapter = self.adapter(
            lambda r: httpx.Response(200, json={"id": "E000", "name": "Camp obligatori"})
        )

        result = await adapter.dispatch(report.id)

        assert result.success is False
        assert result.failure_code == FailureCode.AGENCY_ERROR
        assert isinstance(result.to_error(), UpstreamError)

        stored = await self.repository.get_report(report.id)
        assert stored.status == ReportStatus.PENDING_REVIEW
        assert stored.last_error == "FCC error: Camp obligatori"
        assert stored.fcc_incident_id is None

    async def test_transport_error_reverts(self, report_factory):
        report = await report_factory()

        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        result = await self.adapter(refuse).dispatch(report.id)

        assert result.failure_code == FailureCode.TRANSPORT
        stored = await self.repository.get_report(report.id)
        assert stored.status == ReportStatus.PENDING_REVIEW
        assert "connection refused" in stored.last_error

    async def test_retry_after_failure(self, report_factory):
        """Test a reverted report can be dispatched again."""
        report = await report_factory()
        await self.adapter(lambda r: httpx.Response(500, text="down")).dispatch(report.id)

        result = await self.adapter(lambda r: httpx.Response(200, json={"altainc": "777"})).dispatch(report.id)

        assert result.success is True
        stored = await self.repository.get_report(report.id)
        assert stored.status == ReportStatus.SENT
        assert stored.last_error is None

    async def test_no_media(self, report_factory):
        """Test a report whose photos never arrived is not sent."""
        report = await report_factory(uploaded=False)
        adapter = self.adapter(lambda r: httpx.Response(200, json={"altainc": "1"}))

        result = await adapter.dispatch(report.id)

        assert result.failure_code == FailureCode.NO_MEDIA
        assert isinstance(result.to_error(), ValidationError)
        assert self.requests == []
        stored = await self.repository.get_report(report.id)
        assert stored.status == ReportStatus.PENDING_REVIEW
        assert stored.last_error == "No photo available for FCC submission"

    async def test_first_available_photo(self, report_factory):
        """Test a missing first photo falls back to the next one."""
        report = await report_factory(photos=2)
        self.blob_store.objects.pop(f"{report.id}/0.jpg")
        self.blob_store.objects[f"{report.id}/1.jpg"] = b"\xff\xd8second"

        adapter = self.adapter(lambda r: httpx.Response(200, json={"altainc": "2"}))
        await adapter.dispatch(report.id)

        assert b"\xff\xd8second" in self.requests[0].content

    async def test_invalid_category(self, report_factory):
        report = await report_factory(category="bulky")
        result = await self.adapter(lambda r: httpx.Response(200, json={})).dispatch(report.id)

        assert result.failure_code == FailureCode.INVALID_CATEGORY
        assert self.requests == []

    async def test_rejected_report(self, report_factory):
        """Test only pending_review reports can be dispatched."""
        report = await report_factory(status=ReportStatus.REJECTED)
        adapter = self.adapter(lambda r: httpx.Response(200, json={"altainc": "1"}))

        with pytest.raises(InvalidTransitionError):
            await adapter.dispatch(report.id)
        assert self.requests == []

    async def test_sent_report_not_resent(self, report_factory):
        report = await report_factory(status=ReportStatus.SENT)
        adapter = self.adapter(lambda r: httpx.Response(200, json={"altainc": "1"}))

        with pytest.raises(InvalidTransitionError):
            await adapter.dispatch(report.id)
        assert self.requests == []

    async def test_rejected_while_in_flight(self, report_factory):
        """Test an operator rejection during the call is not overwritten."""
        report = await report_factory()

        async def reject_then_fail(request):
            await self.repository.update_report(report.id, {"status": ReportStatus.REJECTED})
            await self.session.commit()
            return httpx.Response(200, text=json.dumps({"id": "E000", "name": "err"}))

        result = await self.adapter(reject_then_fail).dispatch(report.id)

        assert result.success is False
        stored = await self.repository.get_report(report.id)
        assert stored.status == ReportStatus.REJECTED

    async def test_deleted_while_in_flight_logs_incident(self, report_factory, caplog):
        """Test an accepted submission that cannot be marked sent keeps its incident id in the log."""
        report = await report_factory()

        async def delete_then_accept(request):
            await self.repository.update_report(report.id, {"status": ReportStatus.DELETED})
            await self.session.commit()
            return httpx.Response(200, json={"altainc": "999"})

        with caplog.at_level(logging.WARNING, logger="gironaneta.dispatch"):
            with pytest.raises(InvalidTransitionError):
                await self.adapter(delete_then_accept).dispatch(report.id)

        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert any("999" in r.getMessage() and report.id in r.getMessage() for r in warnings)
        stored = await self.repository.get_report(report.id)
        assert stored.status == ReportStatus.DELETED
        assert stored.fcc_incident_id is None
