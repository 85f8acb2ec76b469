"""The remote collaborator: issues one request descriptor, returns one response.

`Remote` is the only seam between the access layer and the network.
`Boto3Remote` implements it on top of boto3's `sdb` client; tests substitute
in-memory fakes.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable, Protocol

from .errors import SdbValidation
from .model import (
    DoesNotExist,
    DomainMetadata,
    Equals,
    Page,
    PutCondition,
    ResponseMetadata,
    SelectItem,
)
from .requests import (
    BatchPutRequest,
    CreateDomainRequest,
    DeleteAttributesRequest,
    DeleteDomainRequest,
    DomainMetadataRequest,
    GetAttributesRequest,
    ListDomainsRequest,
    PutAttributesRequest,
    SdbRequest,
    SelectRequest,
)


class Remote(Protocol):
    def issue(self, request: SdbRequest) -> Any: ...


def _expected(condition: PutCondition) -> dict[str, Any] | None:
    if isinstance(condition, Equals):
        return {"Name": condition.name, "Value": condition.value, "Exists": True}
    if isinstance(condition, DoesNotExist):
        return {"Name": condition.name, "Exists": False}
    return None


def _metadata(resp: dict[str, Any]) -> ResponseMetadata:
    meta = (resp or {}).get("ResponseMetadata") or {}
    box = meta.get("BoxUsage")
    return ResponseMetadata(
        request_id=meta.get("RequestId"),
        box_usage=float(box) if box is not None else None,
    )


def _attributes(raw: list[dict[str, Any]] | None) -> dict[str, frozenset[str]]:
    out: dict[str, set[str]] = {}
    for a in raw or []:
        out.setdefault(str(a.get("Name")), set()).add(str(a.get("Value")))
    return {k: frozenset(v) for k, v in out.items()}


class Boto3Remote:
    def __init__(self, client: Any | None = None):
        if client is None:
            from .client import sdb_client

            client = sdb_client()
        self._client = client
        self._handlers: dict[type, Callable[[Any], Any]] = {
            SelectRequest: self._select,
            ListDomainsRequest: self._list_domains,
            GetAttributesRequest: self._get_attributes,
            DomainMetadataRequest: self._domain_metadata,
            BatchPutRequest: self._batch_put_attributes,
            PutAttributesRequest: self._put_attributes,
            DeleteAttributesRequest: self._delete_attributes,
            CreateDomainRequest: self._create_domain,
            DeleteDomainRequest: self._delete_domain,
        }

    def issue(self, request: SdbRequest) -> Any:
        handler = self._handlers.get(type(request))
        if handler is None:
            raise SdbValidation(message=f"Unsupported request: {type(request).__name__}")
        return handler(request)

    # --- reads ---

    def _select(self, req: SelectRequest) -> Page:
        kwargs: dict[str, Any] = {"SelectExpression": req.expression}
        if req.consistent_read:
            kwargs["ConsistentRead"] = True
        if req.next_token:
            kwargs["NextToken"] = req.next_token
        resp = self._client.select(**kwargs)
        items = [
            SelectItem(name=str(it.get("Name")), attributes=_attributes(it.get("Attributes")))
            for it in resp.get("Items") or []
        ]
        return Page(items=items, next_token=resp.get("NextToken"))

    def _list_domains(self, req: ListDomainsRequest) -> Page:
        kwargs: dict[str, Any] = {}
        if req.max_domains:
            kwargs["MaxNumberOfDomains"] = int(req.max_domains)
        if req.next_token:
            kwargs["NextToken"] = req.next_token
        resp = self._client.list_domains(**kwargs)
        return Page(items=list(resp.get("DomainNames") or []), next_token=resp.get("NextToken"))

    def _get_attributes(self, req: GetAttributesRequest) -> dict[str, frozenset[str]]:
        kwargs: dict[str, Any] = {"DomainName": req.domain, "ItemName": req.item}
        if req.attribute_names:
            kwargs["AttributeNames"] = sorted(req.attribute_names)
        if req.consistent_read:
            kwargs["ConsistentRead"] = True
        resp = self._client.get_attributes(**kwargs)
        return _attributes(resp.get("Attributes"))

    def _domain_metadata(self, req: DomainMetadataRequest) -> DomainMetadata:
        resp = self._client.domain_metadata(DomainName=req.domain)
        ts = resp.get("Timestamp")
        return DomainMetadata(
            item_count=int(resp.get("ItemCount") or 0),
            item_names_size_bytes=int(resp.get("ItemNamesSizeBytes") or 0),
            attribute_name_count=int(resp.get("AttributeNameCount") or 0),
            attribute_names_size_bytes=int(resp.get("AttributeNamesSizeBytes") or 0),
            attribute_value_count=int(resp.get("AttributeValueCount") or 0),
            attribute_values_size_bytes=int(resp.get("AttributeValuesSizeBytes") or 0),
            timestamp=datetime.fromtimestamp(int(ts), tz=timezone.utc) if ts is not None else None,
        )

    # --- writes ---

    def _batch_put_attributes(self, req: BatchPutRequest) -> ResponseMetadata:
        if _expected(req.condition) is not None:
            raise SdbValidation(
                message="BatchPutAttributes does not accept a put condition",
                operation=req.operation,
                domain=req.domain,
            )
        # One entry per item name; an item may only appear once per call.
        by_item: dict[str, list[dict[str, Any]]] = {}
        for op in req.operations:
            by_item.setdefault(op.item_name, []).append(
                {"Name": op.attribute, "Value": op.value, "Replace": op.replace}
            )
        items = [{"Name": name, "Attributes": attrs} for name, attrs in by_item.items()]
        return _metadata(self._client.batch_put_attributes(DomainName=req.domain, Items=items))

    def _put_attributes(self, req: PutAttributesRequest) -> ResponseMetadata:
        attrs: list[dict[str, Any]] = []
        for name, (values, replace) in req.attributes.items():
            for v in sorted(values):
                attrs.append({"Name": name, "Value": v, "Replace": bool(replace)})
        kwargs: dict[str, Any] = {"DomainName": req.domain, "ItemName": req.item, "Attributes": attrs}
        expected = _expected(req.condition)
        if expected:
            kwargs["Expected"] = expected
        return _metadata(self._client.put_attributes(**kwargs))

    def _delete_attributes(self, req: DeleteAttributesRequest) -> ResponseMetadata:
        kwargs: dict[str, Any] = {"DomainName": req.domain, "ItemName": req.item}
        attrs: list[dict[str, Any]] = []
        for name, values in req.attributes.items():
            if not values:
                attrs.append({"Name": name})
            for v in sorted(values):
                attrs.append({"Name": name, "Value": v})
        if attrs:
            kwargs["Attributes"] = attrs
        expected = _expected(req.condition)
        if expected:
            kwargs["Expected"] = expected
        return _metadata(self._client.delete_attributes(**kwargs))

    def _create_domain(self, req: CreateDomainRequest) -> ResponseMetadata:
        return _metadata(self._client.create_domain(DomainName=req.domain))

    def _delete_domain(self, req: DeleteDomainRequest) -> ResponseMetadata:
        return _metadata(self._client.delete_domain(DomainName=req.domain))
