"""
Record clients for Huawei Cloud and Tencent Cloud private DNS zones.

Each client wraps the vendor's own Python SDK client, bound to one zone, and
turns SDK errors and malformed responses into ``ProviderError``.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from huaweicloudsdkcore.auth.credentials import BasicCredentials
from huaweicloudsdkcore.exceptions.exceptions import SdkException
from huaweicloudsdkdns.v2 import (
    CreateRecordSetRequest,
    CreateRecordSetRequestBody,
    DnsClient,
    ListRecordSetsByZoneRequest,
    UpdateRecordSetReq,
    UpdateRecordSetRequest,
)
from huaweicloudsdkdns.v2.region.dns_region import DnsRegion
from tencentcloud.common import credential
from tencentcloud.common.exception.tencent_cloud_sdk_exception import TencentCloudSDKException
from tencentcloud.common.profile.client_profile import ClientProfile
from tencentcloud.common.profile.http_profile import HttpProfile
from tencentcloud.privatedns.v20201028 import models, privatedns_client

from .backends import DNSBackend, RecordSet
from .common import BackendConfig, InvalidRecordConfig, ProviderError

logger = logging.getLogger(__name__)

TENCENT_PRIVATEDNS_ENDPOINT = "privatedns.tencentcloudapi.com"


def _record_set(record_id: Any, name: Any, rtype: Any, ttl: Any, values: List[Any]) -> RecordSet:
    if not isinstance(values, (list, tuple)):
        raise ProviderError(f"Malformed record in vendor response: values {values!r}")
    try:
        return RecordSet(
            id=str(record_id) if record_id else None,
            name=str(name or ""),
            type=str(rtype or ""),
            ttl=int(ttl or 0),
            values=frozenset(str(v) for v in values),
        )
    except (TypeError, ValueError) as e:
        raise ProviderError(f"Malformed record in vendor response: {e}", cause=e) from e


def _items(response: Any, field: str) -> list:
    items = getattr(response, field, None)
    if items is None:
        return []
    if not isinstance(items, (list, tuple)):
        raise ProviderError(f"Unexpected {field!r} in vendor response: {type(items).__name__}")
    return list(items)


def _huawei_error(what: str, e: SdkException) -> ProviderError:
    code = getattr(e, "error_code", None) or type(e).__name__
    message = getattr(e, "error_msg", None) or ""
    status = getattr(e, "status_code", None)
    prefix = f"{status} " if status else ""
    return ProviderError(f"Huawei Cloud {what} failed: {prefix}[{code}] {message}".rstrip(), cause=e)


class HuaweiPrivateDNSClient:
    def __init__(self, sdk_client: Any, zone_id: str):
        self.zone_id = zone_id
        self._sdk = sdk_client

    def list_records(self, fqdn: str, hostname: str) -> List[RecordSet]:
        request = ListRecordSetsByZoneRequest(zone_id=self.zone_id, name=fqdn, search_mode="equal")
        try:
            response = self._sdk.list_record_sets_by_zone(request)
        except SdkException as e:
            raise _huawei_error("list_record_sets_by_zone", e) from e
        return [
            _record_set(
                getattr(item, "id", None),
                getattr(item, "name", None),
                getattr(item, "type", None),
                getattr(item, "ttl", None),
                getattr(item, "records", None) or [],
            )
            for item in _items(response, "recordsets")
        ]

    def create_record(
        self, fqdn: str, hostname: str, rtype: str, ttl: int, values: List[str]
    ) -> Optional[str]:
        request = CreateRecordSetRequest(
            zone_id=self.zone_id,
            body=CreateRecordSetRequestBody(name=fqdn, type=rtype, ttl=ttl, records=list(values)),
        )
        try:
            response = self._sdk.create_record_set(request)
        except SdkException as e:
            raise _huawei_error("create_record_set", e) from e
        return getattr(response, "id", None)

    def update_record(
        self,
        record_id: str,
        fqdn: str,
        hostname: str,
        rtype: str,
        ttl: int,
        values: List[str],
    ) -> None:
        request = UpdateRecordSetRequest(
            zone_id=self.zone_id,
            recordset_id=record_id,
            body=UpdateRecordSetReq(type=rtype, ttl=ttl, records=list(values)),
        )
        try:
            self._sdk.update_record_set(request)
        except SdkException as e:
            raise _huawei_error("update_record_set", e) from e

    def close(self) -> None:
        pass


class TencentPrivateDNSClient:
    def __init__(self, sdk_client: Any, zone_id: str, domain: str):
        self.zone_id = zone_id
        self.domain = domain
        self._sdk = sdk_client

    def _call(self, action: str, request: Any) -> Any:
        try:
            return getattr(self._sdk, action)(request)
        except TencentCloudSDKException as e:
            raise ProviderError(
                f"Tencent Cloud {action} failed [{e.get_code()}]: {e.get_message()}", cause=e
            ) from e

    def list_records(self, fqdn: str, hostname: str) -> List[RecordSet]:
        request = models.DescribePrivateZoneRecordListRequest()
        request.ZoneId = self.zone_id
        sub_filter = models.Filter()
        sub_filter.Name = "SubDomain"
        sub_filter.Values = [hostname]
        request.Filters = [sub_filter]

        response = self._call("DescribePrivateZoneRecordList", request)
        records = []
        for item in _items(response, "RecordSet"):
            sub = getattr(item, "SubDomain", None) or ""
            value = getattr(item, "RecordValue", None)
            records.append(
                _record_set(
                    getattr(item, "RecordId", None),
                    f"{sub}.{self.domain}",
                    getattr(item, "RecordType", None),
                    getattr(item, "TTL", None),
                    [value] if value else [],
                )
            )
        return records

    def create_record(
        self, fqdn: str, hostname: str, rtype: str, ttl: int, values: List[str]
    ) -> Optional[str]:
        request = models.CreatePrivateZoneRecordRequest()
        request.ZoneId = self.zone_id
        request.SubDomain = hostname
        request.RecordType = rtype
        request.RecordValue = values[0]
        request.TTL = ttl
        response = self._call("CreatePrivateZoneRecord", request)
        return getattr(response, "RecordId", None)

    def update_record(
        self,
        record_id: str,
        fqdn: str,
        hostname: str,
        rtype: str,
        ttl: int,
        values: List[str],
    ) -> None:
        request = models.ModifyPrivateZoneRecordRequest()
        request.ZoneId = self.zone_id
        request.RecordId = record_id
        request.SubDomain = hostname
        request.RecordType = rtype
        request.RecordValue = values[0]
        request.TTL = ttl
        self._call("ModifyPrivateZoneRecord", request)

    def close(self) -> None:
        pass


def huaweicloud_private(config: BackendConfig) -> DNSBackend:
    creds = config.require_credentials("access_key", "secret_key", "region")
    logger.info(
        "Creating Huawei Cloud private DNS backend %s (domain=%s, region=%s)",
        config.name, config.domain, creds["region"],
    )
    try:
        region = DnsRegion.value_of(creds["region"])
    except KeyError:
        raise InvalidRecordConfig(f"Backend {config.name}: unknown Huawei Cloud region {creds['region']!r}")
    auth = BasicCredentials(
        creds["access_key"], creds["secret_key"], project_id=config.credentials.get("project_id")
    )
    try:
        sdk_client = DnsClient.new_builder().with_credentials(auth).with_region(region).build()
    except SdkException as e:
        raise _huawei_error("client initialisation", e) from e
    return DNSBackend(config, HuaweiPrivateDNSClient(sdk_client, config.zone_id))


def tencentcloud_private(config: BackendConfig) -> DNSBackend:
    creds = config.require_credentials("secretId", "secretKey")
    logger.info(
        "Creating Tencent Cloud private DNS backend %s (domain=%s)",
        config.name, config.domain,
    )
    http_profile = HttpProfile()
    http_profile.endpoint = TENCENT_PRIVATEDNS_ENDPOINT
    profile = ClientProfile()
    profile.httpProfile = http_profile
    sdk_client = privatedns_client.PrivatednsClient(
        credential.Credential(creds["secretId"], creds["secretKey"]), "", profile
    )
    return DNSBackend(config, TencentPrivateDNSClient(sdk_client, config.zone_id, config.domain))
