"""
CloudStack SDK Client

Main entry point for issuing commands against the CloudStack API.
"""

import base64
import logging
import threading
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from .config import load_config_from_env
from .contracts import CloudStackConfig
from .errors import ConfigurationError
from .gateway import CommandGateway
from .http_gateway import HttpCommandGateway
from .jobs import JobPollPolicy, wait_for_job

logger = logging.getLogger(__name__)


class CloudStackClient:
    """
    CloudStack Python SDK Client

    Typed wrappers around CloudStack commands. Every method sends exactly one
    signed request and returns the payload found under the command's
    envelope key. Nothing is retried, cached or coordinated across calls.

    Commands that CloudStack runs asynchronously (deploy, start, stop, ...)
    return the job handle (``{"jobid": ..., "id": ...}``); pass the job id
    to ``wait_for_job`` to block until the job finishes.

    The client holds only immutable configuration and a pooled HTTP client,
    so one instance can be shared by any number of concurrent tasks.

    Example:
        ```python
        from cloudstack_sdk import CloudStackClient, CloudStackConfig

        config = CloudStackConfig(
            api_url="https://cloud.example.com/client/api",
            api_key="your-api-key",
            secret_key="your-secret-key",
        )

        async with CloudStackClient(config) as client:
            job = await client.deploy_virtual_machine(
                service_offering_id="so-1",
                template_id="tpl-1",
                zone_id="zone-1",
                name="web-01",
            )
            vm = await client.wait_for_job(job["jobid"])
        ```
    """

    def __init__(
        self,
        config: Optional[CloudStackConfig] = None,
        *,
        gateway: Optional[CommandGateway] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Initialize CloudStack client.

        Args:
            config: Endpoint and credentials (default: read from environment)
            gateway: Optional custom gateway implementation
            http_client: Optional httpx.AsyncClient for the default gateway

        Raises:
            ConfigurationError: No gateway given and configuration is missing
        """
        self.closed = False

        if gateway:
            self.config = config
            self.gateway = gateway
            return

        if config is None:
            config = load_config_from_env()
        if not isinstance(config, CloudStackConfig):
            raise ConfigurationError(
                f"Expected CloudStackConfig, got {type(config).__name__}"
            )

        self.config = config
        self.gateway = HttpCommandGateway(config, http_client=http_client)

    async def request(self, command: str, params: Optional[Dict[str, Any]] = None) -> Any:
        """
        Send any command by name.

        Args:
            command: CloudStack command name
            params: Wire parameters; None values are dropped

        Returns:
            Unwrapped payload

        Raises:
            ValidationError: Parameter collides with an injected key
            TransportError: Connection/timeout issues
            ProtocolError: Malformed response
            RemoteError: Service reported an error
        """
        return await self.gateway.send(command, params or {})

    async def wait_for_job(self, job_id: str, policy: Optional[JobPollPolicy] = None) -> Any:
        """Poll an async job until it finishes; see ``jobs.wait_for_job``."""
        return await wait_for_job(self, job_id, policy)

    # ------------------------------------------------------------------
    # Compute - zones, offerings, templates, virtual machines
    # ------------------------------------------------------------------

    async def list_zones(self, available: bool = True) -> Dict[str, Any]:
        return await self.request("listZones", {"available": available})

    async def list_service_offerings(self) -> Dict[str, Any]:
        """List compute plans."""
        return await self.request("listServiceOfferings")

    async def list_templates(
        self, template_filter: str = "featured", zone_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """List OS templates."""
        return await self.request(
            "listTemplates", {"templatefilter": template_filter, "zoneid": zone_id}
        )

    async def deploy_virtual_machine(
        self,
        service_offering_id: str,
        template_id: str,
        zone_id: str,
        name: Optional[str] = None,
        display_name: Optional[str] = None,
        network_ids: Optional[List[str]] = None,
        key_pair: Optional[str] = None,
        user_data: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Deploy a new virtual machine.

        Args:
            service_offering_id: Compute plan
            template_id: OS template
            zone_id: Target zone
            name: Host name
            display_name: Name shown in the console
            network_ids: Networks to attach, sent comma-joined
            key_pair: SSH key pair name
            user_data: Cloud-init text, sent base64-encoded

        Returns:
            Async job handle
        """
        params: Dict[str, Any] = {
            "serviceofferingid": service_offering_id,
            "templateid": template_id,
            "zoneid": zone_id,
            "name": name or None,
            "displayname": display_name or None,
            "networkids": network_ids or None,
            "keypair": key_pair or None,
        }
        if user_data:
            params["userdata"] = base64.b64encode(user_data.encode("utf-8")).decode("ascii")

        logger.info(f"Deploying virtual machine: zone={zone_id}, template={template_id}")

        return await self.request("deployVirtualMachine", params)

    async def list_virtual_machines(
        self,
        vm_id: Optional[str] = None,
        name: Optional[str] = None,
        state: Optional[str] = None,
        zone_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        return await self.request(
            "listVirtualMachines",
            {"id": vm_id, "name": name, "state": state, "zoneid": zone_id},
        )

    async def start_virtual_machine(self, vm_id: str) -> Dict[str, Any]:
        return await self.request("startVirtualMachine", {"id": vm_id})

    async def stop_virtual_machine(self, vm_id: str, forced: bool = False) -> Dict[str, Any]:
        return await self.request("stopVirtualMachine", {"id": vm_id, "forced": forced})

    async def reboot_virtual_machine(self, vm_id: str) -> Dict[str, Any]:
        return await self.request("rebootVirtualMachine", {"id": vm_id})

    async def destroy_virtual_machine(self, vm_id: str, expunge: bool = False) -> Dict[str, Any]:
        return await self.request("destroyVirtualMachine", {"id": vm_id, "expunge": expunge})

    async def scale_virtual_machine(self, vm_id: str, service_offering_id: str) -> Dict[str, Any]:
        """Move a virtual machine to another service offering."""
        return await self.request(
            "scaleVirtualMachine", {"id": vm_id, "serviceofferingid": service_offering_id}
        )

    # ------------------------------------------------------------------
    # VM snapshots
    # ------------------------------------------------------------------

    async def create_vm_snapshot(
        self,
        vm_id: str,
        name: str,
        description: Optional[str] = None,
        snapshot_memory: bool = True,
    ) -> Dict[str, Any]:
        """
        Snapshot a whole VM (all disks, optionally memory).

        Returns the job handle while the snapshot is being taken, or the
        ``vmsnapshot`` record when the service answers synchronously.
        """
        payload = await self.request(
            "createVMSnapshot",
            {
                "virtualmachineid": vm_id,
                "name": name,
                "description": description or "",
                "snapshotmemory": snapshot_memory,
            },
        )
        return _vm_snapshot_record(payload)

    async def list_vm_snapshots(self, vm_id: Optional[str] = None) -> List[Dict[str, Any]]:
        """List VM snapshots; an empty listing is ``[]``."""
        payload = await self.request("listVMSnapshots", {"virtualmachineid": vm_id})
        return payload.get("vmsnapshot", []) if isinstance(payload, dict) else []

    async def delete_vm_snapshot(self, snapshot_id: str) -> Dict[str, Any]:
        return await self.request("deleteVMSnapshot", {"vmsnapshotid": snapshot_id})

    async def revert_to_vm_snapshot(self, snapshot_id: str) -> Dict[str, Any]:
        """Same return shape as ``create_vm_snapshot``."""
        payload = await self.request("revertToVMSnapshot", {"vmsnapshotid": snapshot_id})
        return _vm_snapshot_record(payload)

    # ------------------------------------------------------------------
    # Network - public IPs, firewall, port forwarding
    # ------------------------------------------------------------------

    async def list_public_ip_addresses(
        self, zone_id: Optional[str] = None, account: Optional[str] = None
    ) -> Dict[str, Any]:
        return await self.request(
            "listPublicIpAddresses", {"zoneid": zone_id, "account": account}
        )

    async def associate_ip_address(
        self, zone_id: str, network_id: Optional[str] = None
    ) -> Dict[str, Any]:
        """Acquire a public IP address in ``zone_id``."""
        return await self.request(
            "associateIpAddress", {"zoneid": zone_id, "networkid": network_id}
        )

    async def create_firewall_rule(
        self,
        ip_address_id: str,
        protocol: str,
        start_port: Optional[int] = None,
        end_port: Optional[int] = None,
        cidr_list: Optional[List[str]] = None,
    ) -> Dict[str, Any]:
        """
        Open ports on a public IP.

        ``cidr_list`` is sent as a single comma-joined value.
        """
        return await self.request(
            "createFirewallRule",
            {
                "ipaddressid": ip_address_id,
                "protocol": protocol,
                "startport": start_port,
                "endport": end_port,
                "cidrlist": cidr_list or None,
            },
        )

    async def create_port_forwarding_rule(
        self,
        ip_address_id: str,
        protocol: str,
        public_port: int,
        private_port: int,
        virtual_machine_id: str,
    ) -> Dict[str, Any]:
        return await self.request(
            "createPortForwardingRule",
            {
                "ipaddressid": ip_address_id,
                "protocol": protocol,
                "publicport": public_port,
                "privateport": private_port,
                "virtualmachineid": virtual_machine_id,
            },
        )

    # ------------------------------------------------------------------
    # Storage - volumes, snapshots
    # ------------------------------------------------------------------

    async def list_volumes(
        self,
        volume_id: Optional[str] = None,
        virtual_machine_id: Optional[str] = None,
        zone_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        return await self.request(
            "listVolumes",
            {"id": volume_id, "virtualmachineid": virtual_machine_id, "zoneid": zone_id},
        )

    async def create_volume(
        self,
        name: str,
        disk_offering_id: str,
        zone_id: str,
        size: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Create a data volume; ``size`` in GB for custom disk offerings."""
        return await self.request(
            "createVolume",
            {
                "name": name,
                "diskofferingid": disk_offering_id,
                "zoneid": zone_id,
                "size": size,
            },
        )

    async def attach_volume(self, volume_id: str, virtual_machine_id: str) -> Dict[str, Any]:
        return await self.request(
            "attachVolume", {"id": volume_id, "virtualmachineid": virtual_machine_id}
        )

    async def detach_volume(self, volume_id: str) -> Dict[str, Any]:
        return await self.request("detachVolume", {"id": volume_id})

    async def create_snapshot(self, volume_id: str, name: Optional[str] = None) -> Dict[str, Any]:
        return await self.request("createSnapshot", {"volumeid": volume_id, "name": name})

    async def list_snapshots(
        self, volume_id: Optional[str] = None, snapshot_id: Optional[str] = None
    ) -> Dict[str, Any]:
        return await self.request("listSnapshots", {"volumeid": volume_id, "id": snapshot_id})

    # ------------------------------------------------------------------
    # Usage & billing
    # ------------------------------------------------------------------

    async def list_usage_records(
        self,
        start_date: datetime,
        end_date: datetime,
        account: Optional[str] = None,
        domain_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        List usage records between two instants.

        Dates are sent as UTC ISO-8601 timestamps.
        """
        return await self.request(
            "listUsageRecords",
            {
                "startdate": start_date,
                "enddate": end_date,
                "account": account,
                "domainid": domain_id,
            },
        )

    async def list_events(
        self,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        level: Optional[str] = None,
        event_type: Optional[str] = None,
    ) -> Dict[str, Any]:
        return await self.request(
            "listEvents",
            {
                "startdate": start_date,
                "enddate": end_date,
                "level": level,
                "type": event_type,
            },
        )

    # ------------------------------------------------------------------
    # Async jobs
    # ------------------------------------------------------------------

    async def query_async_job_result(self, job_id: str) -> Dict[str, Any]:
        return await self.request("queryAsyncJobResult", {"jobid": job_id})

    async def close(self) -> None:
        """Close gateway resources."""
        if hasattr(self.gateway, "close"):
            await self.gateway.close()
        self.closed = True

    async def __aenter__(self) -> "CloudStackClient":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:  # type: ignore
        """Async context manager exit."""
        await self.close()


_client: Optional[CloudStackClient] = None
_client_lock = threading.Lock()


def _warn_if_open(previous: Optional[CloudStackClient]) -> None:
    if previous is not None and not previous.closed:
        logger.warning(
            "Dropping process-wide CloudStack client without closing it; "
            "its HTTP connection pool stays open. Use 'await close_client()' first."
        )


def configure_client(config: Optional[CloudStackConfig] = None) -> CloudStackClient:
    """
    Create the process-wide client at startup.

    Reads the environment when ``config`` is omitted; any missing value
    raises ConfigurationError here rather than on first use. Replacing a
    client that was never closed logs a warning.
    """
    global _client
    client = CloudStackClient(config)
    with _client_lock:
        previous, _client = _client, client
    _warn_if_open(previous)
    return client


def get_client() -> CloudStackClient:
    """Return the process-wide client, creating it from the environment once."""
    global _client
    with _client_lock:
        if _client is None:
            _client = CloudStackClient(load_config_from_env())
        return _client


async def close_client() -> None:
    """Close and forget the process-wide client, if any."""
    global _client
    with _client_lock:
        previous, _client = _client, None
    if previous is not None:
        await previous.close()


def reset_client() -> None:
    """Forget the process-wide client without closing it (warns if still open)."""
    global _client
    with _client_lock:
        previous, _client = _client, None
    _warn_if_open(previous)


def _vm_snapshot_record(payload: Any) -> Any:
    if isinstance(payload, dict) and "jobid" not in payload:
        return payload.get("vmsnapshot", payload)
    return payload
