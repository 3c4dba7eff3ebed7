"""Single-shot state-changing requests with uniform status reporting."""

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field

from rsc_report.api_client import GraphQLClient, first_error_message
from rsc_report.errors import GraphQLTransportError
from rsc_report.lookups import require_known_id
from rsc_report.mapper import resolve_path
from rsc_report.models import MutationResult, RequestStatus

logger = logging.getLogger(__name__)


class MutationDescriptor(BaseModel):
    """A fully formed mutation request."""

    operation_name: str
    query: str
    variables: dict[str, Any] = Field(default_factory=dict)
    result_path: str = Field(..., description="Path under 'data' to the mutation's result object")
    job_id_field: str | None = Field(None, description="Path inside the result to the job/task ID")


class MutationExecutor:
    """Runs one mutation and reports its outcome; never retries."""

    def __init__(self, client: GraphQLClient) -> None:
        self.client = client
        self.logger = logging.getLogger(__name__)

    def execute(self, descriptor: MutationDescriptor, echo: dict[str, Any] | None = None) -> MutationResult:
        """
        Perform the mutation.

        A transport exception is caught and reported as ``FAILED``. GraphQL
        errors in a 200 body are copied to ``error_message`` without touching
        ``request_status``; ``outcome`` combines both.
        """
        echo = dict(echo or {})
        self.logger.info(f"Submitting {descriptor.operation_name} {echo}")
        try:
            body = self.client.post(
                descriptor.query, descriptor.variables, operation_name=descriptor.operation_name
            )
        except GraphQLTransportError as e:
            self.logger.error(f"{descriptor.operation_name} failed: {e}")
            return MutationResult(
                operation=descriptor.operation_name,
                request_status=RequestStatus.FAILED,
                parameters=echo,
                error_message=str(e),
            )

        error_message = first_error_message(body)
        if error_message:
            self.logger.warning(f"{descriptor.operation_name} returned an error: {error_message}")

        job_id = None
        if descriptor.job_id_field:
            result = resolve_path(body.get("data") or {}, descriptor.result_path)
            value = resolve_path(result, descriptor.job_id_field)
            job_id = str(value) if value is not None else None

        return MutationResult(
            operation=descriptor.operation_name,
            request_status=RequestStatus.SUCCESS,
            parameters=echo,
            job_id=job_id,
            error_message=error_message,
        )


# ── On-demand snapshots ───────────────────────────────────────────────


class SnapshotObjectType(StrEnum):
    """Object types that support an on-demand snapshot."""

    VSPHERE_VM = "VSPHERE_VM"
    HYPERV_VM = "HYPERV_VM"
    NUTANIX_VM = "NUTANIX_VM"
    MSSQL_DATABASE = "MSSQL_DATABASE"
    ORACLE_DATABASE = "ORACLE_DATABASE"
    FILESET = "FILESET"
    MANAGED_VOLUME = "MANAGED_VOLUME"
    VOLUME_GROUP = "VOLUME_GROUP"
    CLOUD_NATIVE = "CLOUD_NATIVE"


@dataclass(frozen=True)
class SnapshotStrategy:
    """Request builder and result location for one object type."""

    operation_name: str
    query: str
    build_variables: Callable[[str, str], dict[str, Any]]
    result_path: str
    job_id_field: str = "id"

    def descriptor(self, object_id: str, sla_id: str) -> MutationDescriptor:
        return MutationDescriptor(
            operation_name=self.operation_name,
            query=self.query,
            variables=self.build_variables(object_id, sla_id),
            result_path=self.result_path,
            job_id_field=self.job_id_field,
        )


def _id_sla(object_id: str, sla_id: str) -> dict[str, Any]:
    return {"input": {"id": object_id, "config": {"slaId": sla_id}}}


def _id_base_config(object_id: str, sla_id: str) -> dict[str, Any]:
    return {
        "input": {
            "id": object_id,
            "config": {"baseOnDemandSnapshotConfig": {"slaId": sla_id}},
        }
    }


def _managed_volume(object_id: str, sla_id: str) -> dict[str, Any]:
    return {"input": {"id": object_id, "config": {"retentionConfig": {"slaId": sla_id}}}}


def _workload_ids(object_id: str, sla_id: str) -> dict[str, Any]:
    return {"input": {"workloadIds": [object_id], "slaId": sla_id}}


SNAPSHOT_STRATEGIES: dict[SnapshotObjectType, SnapshotStrategy] = {
    SnapshotObjectType.VSPHERE_VM: SnapshotStrategy(
        "VsphereOnDemandSnapshot",
        """mutation VsphereOnDemandSnapshot($input: VsphereOnDemandSnapshotInput!) {
          vsphereOnDemandSnapshot(input: $input) { id status }
        }""",
        _id_sla,
        "vsphereOnDemandSnapshot",
    ),
    SnapshotObjectType.HYPERV_VM: SnapshotStrategy(
        "HypervOnDemandSnapshot",
        """mutation HypervOnDemandSnapshot($input: HypervOnDemandSnapshotInput!) {
          hypervOnDemandSnapshot(input: $input) { id status }
        }""",
        _id_sla,
        "hypervOnDemandSnapshot",
    ),
    SnapshotObjectType.NUTANIX_VM: SnapshotStrategy(
        "NutanixOnDemandSnapshot",
        """mutation NutanixOnDemandSnapshot($input: CreateOnDemandNutanixBackupInput!) {
          createOnDemandNutanixBackup(input: $input) { id status }
        }""",
        _id_sla,
        "createOnDemandNutanixBackup",
    ),
    SnapshotObjectType.MSSQL_DATABASE: SnapshotStrategy(
        "MssqlOnDemandSnapshot",
        """mutation MssqlOnDemandSnapshot($input: CreateOnDemandMssqlBackupInput!) {
          createOnDemandMssqlBackup(input: $input) { id status }
        }""",
        _id_base_config,
        "createOnDemandMssqlBackup",
    ),
    SnapshotObjectType.ORACLE_DATABASE: SnapshotStrategy(
        "OracleOnDemandSnapshot",
        """mutation OracleOnDemandSnapshot($input: TakeOnDemandOracleDatabaseSnapshotInput!) {
          takeOnDemandOracleDatabaseSnapshot(input: $input) { id status }
        }""",
        _id_base_config,
        "takeOnDemandOracleDatabaseSnapshot",
    ),
    SnapshotObjectType.FILESET: SnapshotStrategy(
        "FilesetOnDemandSnapshot",
        """mutation FilesetOnDemandSnapshot($input: CreateFilesetSnapshotInput!) {
          createFilesetSnapshot(input: $input) { id status }
        }""",
        _id_sla,
        "createFilesetSnapshot",
    ),
    SnapshotObjectType.MANAGED_VOLUME: SnapshotStrategy(
        "ManagedVolumeOnDemandSnapshot",
        """mutation ManagedVolumeOnDemandSnapshot($input: TakeManagedVolumeOnDemandSnapshotInput!) {
          takeManagedVolumeOnDemandSnapshot(input: $input) { id status }
        }""",
        _managed_volume,
        "takeManagedVolumeOnDemandSnapshot",
    ),
    SnapshotObjectType.VOLUME_GROUP: SnapshotStrategy(
        "VolumeGroupOnDemandSnapshot",
        """mutation VolumeGroupOnDemandSnapshot($input: CreateOnDemandVolumeGroupBackupInput!) {
          createOnDemandVolumeGroupBackup(input: $input) { id status }
        }""",
        _id_sla,
        "createOnDemandVolumeGroupBackup",
    ),
    SnapshotObjectType.CLOUD_NATIVE: SnapshotStrategy(
        "CloudNativeOnDemandSnapshot",
        """mutation CloudNativeOnDemandSnapshot($input: TakeOnDemandSnapshotInput!) {
          takeOnDemandSnapshot(input: $input) {
            taskchainUuids { workloadId taskchainUuid }
          }
        }""",
        _workload_ids,
        "takeOnDemandSnapshot",
        "taskchainUuids[0].taskchainUuid",
    ),
}


def take_on_demand_snapshot(
    executor: MutationExecutor,
    object_type: SnapshotObjectType | str,
    object_id: str,
    sla_id: str,
    known_objects: Iterable[dict[str, Any]] | None = None,
    known_slas: Iterable[dict[str, Any]] | None = None,
) -> MutationResult:
    """Start an on-demand snapshot of one object, retained by ``sla_id``.

    When reference collections are given, the object and SLA IDs are checked
    against them first and a :class:`PreconditionError` is raised before any
    request is sent.
    """
    object_type = SnapshotObjectType(object_type)
    if known_objects is not None:
        require_known_id(known_objects, object_id, kind="object")
    if known_slas is not None:
        require_known_id(known_slas, sla_id, kind="SLA domain")

    strategy = SNAPSHOT_STRATEGIES[object_type]
    return executor.execute(
        strategy.descriptor(object_id, sla_id),
        {"ObjectType": object_type.value, "ObjectID": object_id, "SLADomainID": sla_id},
    )


# ── SLA domains ───────────────────────────────────────────────────────

_PAUSE_SLA = """mutation PauseSla($input: PauseSlaInput!) {
  pauseSla(input: $input) { success }
}"""

_ASSIGN_SLA = """mutation AssignSla($input: AssignSlaInput!) {
  assignSla(input: $input) { success }
}"""


def set_sla_paused(
    executor: MutationExecutor,
    sla_id: str,
    cluster_ids: list[str],
    paused: bool,
    known_slas: Iterable[dict[str, Any]] | None = None,
) -> MutationResult:
    """Pause or resume an SLA domain on the given clusters."""
    if known_slas is not None:
        require_known_id(known_slas, sla_id, kind="SLA domain")
    descriptor = MutationDescriptor(
        operation_name="PauseSla",
        query=_PAUSE_SLA,
        variables={"input": {"slaId": sla_id, "clusterUuids": cluster_ids, "pauseSla": paused}},
        result_path="pauseSla",
    )
    return executor.execute(
        descriptor,
        {"Action": "PAUSE" if paused else "RESUME", "SLADomainID": sla_id, "ClusterIDs": ",".join(cluster_ids)},
    )


def pause_sla(
    executor: MutationExecutor,
    sla_id: str,
    cluster_ids: list[str],
    known_slas: Iterable[dict[str, Any]] | None = None,
) -> MutationResult:
    return set_sla_paused(executor, sla_id, cluster_ids, True, known_slas)


def resume_sla(
    executor: MutationExecutor,
    sla_id: str,
    cluster_ids: list[str],
    known_slas: Iterable[dict[str, Any]] | None = None,
) -> MutationResult:
    return set_sla_paused(executor, sla_id, cluster_ids, False, known_slas)


def assign_sla(
    executor: MutationExecutor,
    object_ids: list[str],
    sla_id: str | None,
    known_slas: Iterable[dict[str, Any]] | None = None,
) -> MutationResult:
    """Protect objects with ``sla_id``, or mark them do-not-protect when it is None."""
    if sla_id is not None and known_slas is not None:
        require_known_id(known_slas, sla_id, kind="SLA domain")
    assignment: dict[str, Any] = {"objectIds": object_ids}
    if sla_id is None:
        assignment["slaDomainAssignType"] = "doNotProtect"
    else:
        assignment["slaDomainAssignType"] = "protectWithSlaId"
        assignment["slaOptionalId"] = sla_id
    descriptor = MutationDescriptor(
        operation_name="AssignSla",
        query=_ASSIGN_SLA,
        variables={"input": assignment},
        result_path="assignSla",
    )
    return executor.execute(
        descriptor, {"ObjectIDs": ",".join(object_ids), "SLADomainID": sla_id or "DO_NOT_PROTECT"}
    )


# ── Live mounts ───────────────────────────────────────────────────────

_MSSQL_LIVE_MOUNT = """mutation MssqlLiveMount($input: CreateMssqlLiveMountInput!) {
  createMssqlLiveMount(input: $input) { id status }
}"""

_MSSQL_UNMOUNT = """mutation MssqlLiveUnmount($input: DeleteMssqlLiveMountInput!) {
  deleteMssqlLiveMount(input: $input) { id status }
}"""


def start_live_mount(
    executor: MutationExecutor,
    database_id: str,
    target_instance_id: str,
    mount_name: str,
    recovery_point: str,
    known_databases: Iterable[dict[str, Any]] | None = None,
) -> MutationResult:
    """Live mount a SQL Server database snapshot onto ``target_instance_id``.

    ``recovery_point`` is an ISO-8601 UTC timestamp.
    """
    if known_databases is not None:
        require_known_id(known_databases, database_id, kind="database")
    descriptor = MutationDescriptor(
        operation_name="MssqlLiveMount",
        query=_MSSQL_LIVE_MOUNT,
        variables={
            "input": {
                "id": database_id,
                "config": {
                    "recoveryPoint": {"date": recovery_point},
                    "mountedDatabaseName": mount_name,
                    "targetInstanceId": target_instance_id,
                },
            }
        },
        result_path="createMssqlLiveMount",
        job_id_field="id",
    )
    return executor.execute(
        descriptor,
        {
            "DatabaseID": database_id,
            "TargetInstanceID": target_instance_id,
            "MountName": mount_name,
            "RecoveryPoint": recovery_point,
        },
    )


def stop_live_mount(
    executor: MutationExecutor,
    live_mount_id: str,
    force: bool = False,
    known_mounts: Iterable[dict[str, Any]] | None = None,
) -> MutationResult:
    """Unmount a SQL Server live mount."""
    if known_mounts is not None:
        require_known_id(known_mounts, live_mount_id, kind="live mount")
    descriptor = MutationDescriptor(
        operation_name="MssqlLiveUnmount",
        query=_MSSQL_UNMOUNT,
        variables={"input": {"id": live_mount_id, "force": force}},
        result_path="deleteMssqlLiveMount",
        job_id_field="id",
    )
    return executor.execute(descriptor, {"LiveMountID": live_mount_id, "Force": force})


# ── Hosts ─────────────────────────────────────────────────────────────

_REGISTER_HOST = """mutation RegisterHost($input: BulkRegisterHostInput!) {
  bulkRegisterHost(input: $input) { data { hostSummary { id name } } }
}"""

_UNREGISTER_HOST = """mutation UnregisterHost($input: BulkDeleteHostInput!) {
  bulkDeleteHost(input: $input) { success }
}"""


def register_host(executor: MutationExecutor, cluster_id: str, hostname: str) -> MutationResult:
    """Register a physical host with a Rubrik cluster."""
    descriptor = MutationDescriptor(
        operation_name="RegisterHost",
        query=_REGISTER_HOST,
        variables={"input": {"clusterUuid": cluster_id, "hosts": [{"hostname": hostname}]}},
        result_path="bulkRegisterHost",
        job_id_field="data[0].hostSummary.id",
    )
    return executor.execute(descriptor, {"ClusterID": cluster_id, "Hostname": hostname})


def unregister_host(
    executor: MutationExecutor,
    cluster_id: str,
    host_id: str,
    known_hosts: Iterable[dict[str, Any]] | None = None,
) -> MutationResult:
    """Remove a registered host from a Rubrik cluster."""
    if known_hosts is not None:
        require_known_id(known_hosts, host_id, kind="host")
    descriptor = MutationDescriptor(
        operation_name="UnregisterHost",
        query=_UNREGISTER_HOST,
        variables={"input": {"clusterUuid": cluster_id, "ids": [host_id]}},
        result_path="bulkDeleteHost",
    )
    return executor.execute(descriptor, {"ClusterID": cluster_id, "HostID": host_id})
