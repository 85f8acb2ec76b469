from __future__ import annotations

import pytest


class FakeSdbClient:
    """Records boto3 `sdb` client calls and returns canned responses."""

    def __init__(self, responses=None):
        self.calls: list[tuple[str, dict]] = []
        self.responses = responses or {}

    def __getattr__(self, op):
        def _call(**kwargs):
            self.calls.append((op, kwargs))
            return self.responses.get(op, {"ResponseMetadata": {"RequestId": f"{op}-1"}})

        return _call


def test_select_translates_request_and_response():
    from attrstore.sdb.remote import Boto3Remote
    from attrstore.sdb.requests import SelectRequest

    client = FakeSdbClient(
        {
            "select": {
                "Items": [
                    {
                        "Name": "A",
                        "Attributes": [
                            {"Name": "tags", "Value": "x"},
                            {"Name": "tags", "Value": "y"},
                            {"Name": "owner", "Value": "alice"},
                        ],
                    },
                    {"Name": "B"},
                ],
                "NextToken": "tok",
            }
        }
    )
    page = Boto3Remote(client).issue(SelectRequest("select * from `d`", consistent_read=True, next_token="t0"))

    assert client.calls == [
        ("select", {"SelectExpression": "select * from `d`", "ConsistentRead": True, "NextToken": "t0"})
    ]
    assert page.next_token == "tok"
    assert [i.name for i in page.items] == ["A", "B"]
    assert page.items[0].attributes == {"tags": frozenset({"x", "y"}), "owner": frozenset({"alice"})}
    assert page.items[1].attributes == {}


def test_list_domains_pages():
    from attrstore.sdb.remote import Boto3Remote
    from attrstore.sdb.requests import ListDomainsRequest

    client = FakeSdbClient({"list_domains": {"DomainNames": ["a", "b"]}})
    page = Boto3Remote(client).issue(ListDomainsRequest(max_domains=2))

    assert client.calls == [("list_domains", {"MaxNumberOfDomains": 2})]
    assert page.items == ["a", "b"]
    assert page.next_token is None


def test_batch_put_groups_operations_by_item():
    from attrstore.sdb.model import AddValue, ReplaceValue
    from attrstore.sdb.remote import Boto3Remote
    from attrstore.sdb.requests import BatchPutRequest

    client = FakeSdbClient()
    ops = (
        AddValue("A", "tags", "x"),
        ReplaceValue("B", "color", "red"),
        AddValue("A", "tags", "y"),
    )
    meta = Boto3Remote(client).issue(BatchPutRequest(domain="d", operations=ops))

    assert meta.request_id == "batch_put_attributes-1"
    op, kwargs = client.calls[0]
    assert op == "batch_put_attributes"
    assert kwargs == {
        "DomainName": "d",
        "Items": [
            {
                "Name": "A",
                "Attributes": [
                    {"Name": "tags", "Value": "x", "Replace": False},
                    {"Name": "tags", "Value": "y", "Replace": False},
                ],
            },
            {"Name": "B", "Attributes": [{"Name": "color", "Value": "red", "Replace": True}]},
        ],
    }


def test_conditional_batch_put_is_rejected():
    from attrstore.sdb.errors import SdbValidation
    from attrstore.sdb.model import AddValue, DoesNotExist
    from attrstore.sdb.remote import Boto3Remote
    from attrstore.sdb.requests import BatchPutRequest

    client = FakeSdbClient()
    with pytest.raises(SdbValidation):
        Boto3Remote(client).issue(
            BatchPutRequest(domain="d", operations=(AddValue("A", "t", "x"),), condition=DoesNotExist("t"))
        )
    assert client.calls == []


def test_put_attributes_with_expected_condition():
    from attrstore.sdb.model import Equals
    from attrstore.sdb.remote import Boto3Remote
    from attrstore.sdb.requests import PutAttributesRequest

    client = FakeSdbClient()
    Boto3Remote(client).issue(
        PutAttributesRequest(
            domain="d",
            item="A",
            attributes={"tags": (frozenset({"y", "x"}), False), "version": (frozenset({"2"}), True)},
            condition=Equals("version", "1"),
        )
    )

    op, kwargs = client.calls[0]
    assert op == "put_attributes"
    assert kwargs == {
        "DomainName": "d",
        "ItemName": "A",
        "Attributes": [
            {"Name": "tags", "Value": "x", "Replace": False},
            {"Name": "tags", "Value": "y", "Replace": False},
            {"Name": "version", "Value": "2", "Replace": True},
        ],
        "Expected": {"Name": "version", "Value": "1", "Exists": True},
    }


def test_get_attributes_with_names():
    from attrstore.sdb.remote import Boto3Remote
    from attrstore.sdb.requests import GetAttributesRequest

    client = FakeSdbClient({"get_attributes": {"Attributes": [{"Name": "tags", "Value": "x"}]}})
    out = Boto3Remote(client).issue(GetAttributesRequest("d", "A", frozenset({"tags"})))

    assert client.calls == [("get_attributes", {"DomainName": "d", "ItemName": "A", "AttributeNames": ["tags"]})]
    assert out == {"tags": frozenset({"x"})}


def test_get_attributes_of_missing_item_is_empty():
    from attrstore.sdb.remote import Boto3Remote
    from attrstore.sdb.requests import GetAttributesRequest

    client = FakeSdbClient({"get_attributes": {}})
    assert Boto3Remote(client).issue(GetAttributesRequest("d", "nobody")) == {}


def test_delete_attributes_encoding():
    from attrstore.sdb.model import DoesNotExist
    from attrstore.sdb.remote import Boto3Remote
    from attrstore.sdb.requests import DeleteAttributesRequest

    client = FakeSdbClient()
    remote = Boto3Remote(client)
    remote.issue(DeleteAttributesRequest("d", "A", {"tags": frozenset({"x"}), "owner": frozenset()}))
    remote.issue(DeleteAttributesRequest("d", "B", condition=DoesNotExist("lock")))

    assert client.calls == [
        (
            "delete_attributes",
            {
                "DomainName": "d",
                "ItemName": "A",
                "Attributes": [{"Name": "tags", "Value": "x"}, {"Name": "owner"}],
            },
        ),
        (
            "delete_attributes",
            {"DomainName": "d", "ItemName": "B", "Expected": {"Name": "lock", "Exists": False}},
        ),
    ]


def test_domain_metadata_parsing():
    from datetime import datetime, timezone

    from attrstore.sdb.remote import Boto3Remote
    from attrstore.sdb.requests import DomainMetadataRequest

    client = FakeSdbClient(
        {
            "domain_metadata": {
                "ItemCount": 3,
                "ItemNamesSizeBytes": 12,
                "AttributeNameCount": 2,
                "AttributeNamesSizeBytes": 9,
                "AttributeValueCount": 5,
                "AttributeValuesSizeBytes": 20,
                "Timestamp": 1700000000,
            }
        }
    )
    meta = Boto3Remote(client).issue(DomainMetadataRequest("d"))

    assert meta.item_count == 3
    assert meta.attribute_value_count == 5
    assert meta.timestamp == datetime.fromtimestamp(1700000000, tz=timezone.utc)


def test_domain_lifecycle_calls():
    from attrstore.sdb.remote import Boto3Remote
    from attrstore.sdb.requests import CreateDomainRequest, DeleteDomainRequest

    client = FakeSdbClient()
    remote = Boto3Remote(client)
    assert remote.issue(CreateDomainRequest("d")).request_id == "create_domain-1"
    remote.issue(DeleteDomainRequest("d"))

    assert [c[0] for c in client.calls] == ["create_domain", "delete_domain"]


def test_unsupported_request_is_rejected():
    from attrstore.sdb.errors import SdbValidation
    from attrstore.sdb.remote import Boto3Remote

    with pytest.raises(SdbValidation):
        Boto3Remote(FakeSdbClient()).issue(object())


def test_item_updates_without_values_never_reach_the_client():
    from attrstore.sdb.account import Account
    from attrstore.sdb.remote import Boto3Remote

    client = FakeSdbClient()
    item = Account(Boto3Remote(client)).domain("d").item("A")
    item.add(("owner", None))
    item.add_values("tags", [])

    assert client.calls == []
