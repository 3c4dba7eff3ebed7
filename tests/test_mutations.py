"""Tests for the mutation executor and the operations built on it."""

import httpx
import pytest

from conftest import CONNECT_ERROR
from rsc_report.errors import PreconditionError
from rsc_report.lookups import find_by_name, require_known_id
from rsc_report.models import RequestStatus
from rsc_report.mutations import (
    SNAPSHOT_STRATEGIES,
    MutationDescriptor,
    MutationExecutor,
    SnapshotObjectType,
    assign_sla,
    pause_sla,
    register_host,
    resume_sla,
    start_live_mount,
    stop_live_mount,
    take_on_demand_snapshot,
    unregister_host,
)

DESCRIPTOR = MutationDescriptor(
    operation_name="DoThing",
    query="mutation DoThing { doThing { id } }",
    result_path="doThing",
    job_id_field="id",
)


class TestExecutor:
    def test_body_errors_do_not_change_request_status(self, make_client):
        client, _ = make_client([{"errors": [{"message": "x"}]}])
        result = MutationExecutor(client).execute(DESCRIPTOR, {"ObjectID": "vm-1"})

        assert result.request_status == RequestStatus.SUCCESS
        assert result.error_message == "x"
        assert result.outcome == RequestStatus.FAILED

    def test_success(self, make_client):
        client, _ = make_client([{"data": {"doThing": {"id": "job-1"}}}])
        result = MutationExecutor(client).execute(DESCRIPTOR, {"ObjectID": "vm-1"})

        assert result.request_status == RequestStatus.SUCCESS
        assert result.outcome == RequestStatus.SUCCESS
        assert result.job_id == "job-1"
        assert result.error_message is None
        assert result.parameters == {"ObjectID": "vm-1"}

    @pytest.mark.parametrize("response", [httpx.Response(500, text="boom"), CONNECT_ERROR])
    def test_transport_failure_is_caught(self, make_client, response):
        client, _ = make_client([response])
        result = MutationExecutor(client).execute(DESCRIPTOR)

        assert result.request_status == RequestStatus.FAILED
        assert result.outcome == RequestStatus.FAILED
        assert result.job_id is None
        assert result.error_message

    def test_missing_job_id_is_none(self, make_client):
        client, _ = make_client([{"data": {"doThing": None}}])
        assert MutationExecutor(client).execute(DESCRIPTOR).job_id is None

    def test_as_record(self, make_client):
        client, _ = make_client([{"data": {"doThing": {"id": "job-1"}}}])
        record = MutationExecutor(client).execute(DESCRIPTOR, {"ObjectID": "vm-1"}).as_record()
        assert list(record) == [
            "Operation",
            "ObjectID",
            "RequestStatus",
            "Outcome",
            "JobID",
            "ErrorMessage",
        ]
        assert record["JobID"] == "job-1"


class TestSnapshots:
    def test_every_object_type_has_a_strategy(self):
        assert set(SNAPSHOT_STRATEGIES) == set(SnapshotObjectType)

    def test_vsphere_request(self, make_client):
        client, transport = make_client([{"data": {"vsphereOnDemandSnapshot": {"id": "job-1", "status": "QUEUED"}}}])
        result = take_on_demand_snapshot(MutationExecutor(client), "VSPHERE_VM", "vm-1", "sla-1")

        assert result.job_id == "job-1"
        assert result.parameters == {"ObjectType": "VSPHERE_VM", "ObjectID": "vm-1", "SLADomainID": "sla-1"}
        assert transport.variables[0] == {"input": {"id": "vm-1", "config": {"slaId": "sla-1"}}}
        assert transport.bodies[0]["operationName"] == "VsphereOnDemandSnapshot"

    def test_mssql_uses_base_config(self, make_client):
        client, transport = make_client([{"data": {"createOnDemandMssqlBackup": {"id": "job-2"}}}])
        result = take_on_demand_snapshot(
            MutationExecutor(client), SnapshotObjectType.MSSQL_DATABASE, "db-1", "sla-1"
        )
        assert result.job_id == "job-2"
        assert transport.variables[0]["input"]["config"] == {"baseOnDemandSnapshotConfig": {"slaId": "sla-1"}}

    def test_cloud_native_job_id_path(self, make_client):
        client, transport = make_client(
            [{"data": {"takeOnDemandSnapshot": {"taskchainUuids": [{"workloadId": "ec2-1", "taskchainUuid": "tc-1"}]}}}]
        )
        result = take_on_demand_snapshot(MutationExecutor(client), SnapshotObjectType.CLOUD_NATIVE, "ec2-1", "sla-1")
        assert result.job_id == "tc-1"
        assert transport.variables[0] == {"input": {"workloadIds": ["ec2-1"], "slaId": "sla-1"}}

    def test_unknown_sla_fails_before_any_request(self, make_client):
        client, transport = make_client([])
        with pytest.raises(PreconditionError, match="sla-9"):
            take_on_demand_snapshot(
                MutationExecutor(client),
                SnapshotObjectType.FILESET,
                "fs-1",
                "sla-9",
                known_slas=[{"id": "sla-1"}],
            )
        assert transport.requests == []

    def test_unknown_object_fails_before_any_request(self, make_client):
        client, transport = make_client([])
        with pytest.raises(PreconditionError):
            take_on_demand_snapshot(
                MutationExecutor(client), "VSPHERE_VM", "vm-9", "sla-1", known_objects=[{"id": "vm-1"}]
            )
        assert transport.requests == []

    def test_unknown_object_type(self, make_client):
        client, _ = make_client([])
        with pytest.raises(ValueError):
            take_on_demand_snapshot(MutationExecutor(client), "TAPE", "x", "sla-1")


class TestSlaOperations:
    def test_pause(self, make_client):
        client, transport = make_client([{"data": {"pauseSla": {"success": True}}}])
        result = pause_sla(MutationExecutor(client), "sla-1", ["c-1", "c-2"], known_slas=[{"id": "sla-1"}])
        assert result.outcome == RequestStatus.SUCCESS
        assert result.parameters["Action"] == "PAUSE"
        assert transport.variables[0]["input"] == {"slaId": "sla-1", "clusterUuids": ["c-1", "c-2"], "pauseSla": True}

    def test_resume(self, make_client):
        client, transport = make_client([{"data": {"pauseSla": {"success": True}}}])
        result = resume_sla(MutationExecutor(client), "sla-1", ["c-1"])
        assert result.parameters["Action"] == "RESUME"
        assert transport.variables[0]["input"]["pauseSla"] is False

    def test_assign(self, make_client):
        client, transport = make_client([{"data": {"assignSla": {"success": True}}}])
        assign_sla(MutationExecutor(client), ["vm-1"], "sla-1")
        assert transport.variables[0]["input"] == {
            "objectIds": ["vm-1"],
            "slaDomainAssignType": "protectWithSlaId",
            "slaOptionalId": "sla-1",
        }

    def test_unprotect(self, make_client):
        client, transport = make_client([{"data": {"assignSla": {"success": True}}}])
        result = assign_sla(MutationExecutor(client), ["vm-1"], None)
        assert transport.variables[0]["input"]["slaDomainAssignType"] == "doNotProtect"
        assert result.parameters["SLADomainID"] == "DO_NOT_PROTECT"


class TestLiveMounts:
    def test_start(self, make_client):
        client, transport = make_client([{"data": {"createMssqlLiveMount": {"id": "job-3"}}}])
        result = start_live_mount(
            MutationExecutor(client), "db-1", "inst-1", "db_copy", "2024-06-01T10:00:00.000Z"
        )
        assert result.job_id == "job-3"
        config = transport.variables[0]["input"]["config"]
        assert config["mountedDatabaseName"] == "db_copy"
        assert config["targetInstanceId"] == "inst-1"
        assert config["recoveryPoint"] == {"date": "2024-06-01T10:00:00.000Z"}

    def test_stop_unknown_mount(self, make_client):
        client, transport = make_client([])
        with pytest.raises(PreconditionError):
            stop_live_mount(MutationExecutor(client), "lm-9", known_mounts=[{"id": "lm-1"}])
        assert transport.requests == []

    def test_stop(self, make_client):
        client, transport = make_client([{"data": {"deleteMssqlLiveMount": {"id": "job-4"}}}])
        result = stop_live_mount(MutationExecutor(client), "lm-1", force=True)
        assert result.job_id == "job-4"
        assert transport.variables[0] == {"input": {"id": "lm-1", "force": True}}


class TestHosts:
    def test_register(self, make_client):
        client, _ = make_client(
            [{"data": {"bulkRegisterHost": {"data": [{"hostSummary": {"id": "host-1", "name": "h1"}}]}}}]
        )
        result = register_host(MutationExecutor(client), "c-1", "h1.example.com")
        assert result.job_id == "host-1"
        assert result.parameters == {"ClusterID": "c-1", "Hostname": "h1.example.com"}

    def test_unregister(self, make_client):
        client, transport = make_client([{"data": {"bulkDeleteHost": {"success": True}}}])
        result = unregister_host(MutationExecutor(client), "c-1", "host-1", known_hosts=[{"id": "host-1"}])
        assert result.outcome == RequestStatus.SUCCESS
        assert transport.variables[0]["input"] == {"clusterUuid": "c-1", "ids": ["host-1"]}


class TestLookups:
    REFERENCE = [{"id": "a", "name": "alpha"}, {"id": "b", "name": "beta"}, {"id": "c", "name": "beta"}]

    def test_require_known_id(self):
        assert require_known_id(self.REFERENCE, "b")["name"] == "beta"

    def test_require_known_id_missing(self):
        with pytest.raises(PreconditionError, match="Unknown SLA domain ID: z"):
            require_known_id(self.REFERENCE, "z", kind="SLA domain")

    def test_find_by_name(self):
        assert find_by_name(self.REFERENCE, "alpha")["id"] == "a"

    def test_find_by_name_ambiguous(self):
        with pytest.raises(PreconditionError, match="not unique"):
            find_by_name(self.REFERENCE, "beta")
