import json
import re
import httpx
import pytest
from carepulse_adapter.client import AppwriteError, Query, unique_id
from conftest import APPOINTMENTS, PATIENTS, SMS, load


@pytest.mark.asyncio
async def test_get_document(client, appwrite):
    route = appwrite.get(f"{APPOINTMENTS}/A1").respond(200, json=load("appointment_document.json"))

    doc = await client.get_document("appointments", "A1")

    assert doc["$id"] == "A1"
    request = route.calls.last.request
    assert request.headers["X-Appwrite-Project"] == "proj"
    assert request.headers["X-Appwrite-Key"] == "secret"


@pytest.mark.asyncio
async def test_create_document_wraps_data(client, appwrite):
    route = appwrite.post(APPOINTMENTS).respond(201, json=load("appointment_document.json"))

    await client.create_document("appointments", "abc", {"status": "pending"})

    body = json.loads(route.calls.last.request.content)
    assert body == {"documentId": "abc", "data": {"status": "pending"}}


@pytest.mark.asyncio
async def test_list_documents_sends_queries(client, appwrite):
    route = appwrite.get(PATIENTS).respond(200, json={"total": 0, "documents": []})

    listing = await client.list_documents("patients", [Query.equal("userId", ["U1"])])

    assert listing["documents"] == []
    sent = route.calls.last.request.url.params.get_list("queries[]")
    assert [json.loads(q) for q in sent] == [{"method": "equal", "attribute": "userId", "values": ["U1"]}]


@pytest.mark.asyncio
async def test_update_document_patches(client, appwrite):
    route = appwrite.patch(f"{APPOINTMENTS}/A1").respond(200, json=load("appointment_document.json"))

    await client.update_document("appointments", "A1", {"status": "scheduled"})

    assert json.loads(route.calls.last.request.content) == {"data": {"status": "scheduled"}}


@pytest.mark.asyncio
async def test_error_response_raises_appwrite_error(client, appwrite):
    appwrite.get(f"{APPOINTMENTS}/missing").respond(
        404,
        json={"message": "Document with the requested ID could not be found.", "code": 404, "type": "document_not_found"},
    )

    with pytest.raises(AppwriteError) as exc_info:
        await client.get_document("appointments", "missing")

    assert exc_info.value.not_found
    assert exc_info.value.type == "document_not_found"
    assert "could not be found" in exc_info.value.message


@pytest.mark.asyncio
async def test_transport_error_raises_appwrite_error(client, appwrite):
    appwrite.get(f"{APPOINTMENTS}/A1").mock(side_effect=httpx.ConnectError("connection refused"))

    with pytest.raises(AppwriteError) as exc_info:
        await client.get_document("appointments", "A1")

    assert exc_info.value.code is None


@pytest.mark.asyncio
async def test_create_sms_targets_users(client, appwrite):
    route = appwrite.post(SMS).respond(201, json=load("sms_message.json"))

    await client.create_sms("m1", "hello", topics=[], users=["U1"])

    body = json.loads(route.calls.last.request.content)
    assert body == {"messageId": "m1", "content": "hello", "topics": [], "users": ["U1"], "targets": []}


@pytest.mark.asyncio
async def test_create_file_uploads_multipart(client, appwrite):
    route = appwrite.post("/v1/storage/buckets/bucket/files").respond(201, json={"$id": "F1"})

    file = await client.create_file("bucket", "F1", "id.png", b"\x89PNG")

    assert file["$id"] == "F1"
    request = route.calls.last.request
    assert request.headers["Content-Type"].startswith("multipart/form-data")


def test_file_view_url(client):
    assert client.file_view_url("bucket", "F1") == (
        "https://appwrite.test/v1/storage/buckets/bucket/files/F1/view?project=proj"
    )


def test_query_encoding():
    assert json.loads(Query.order_desc("$createdAt")) == {"method": "orderDesc", "attribute": "$createdAt"}
    assert json.loads(Query.limit(5)) == {"method": "limit", "values": [5]}


def test_unique_id_shape():
    ids = {unique_id() for _ in range(50)}

    assert len(ids) == 50
    assert all(re.fullmatch(r"[0-9a-f]{13,20}", i) for i in ids)


@pytest.mark.asyncio
async def test_success_with_non_json_body_raises_appwrite_error(client, appwrite):
    appwrite.post(SMS).respond(201, text="<html>gateway</html>")

    with pytest.raises(AppwriteError) as exc_info:
        await client.create_sms("m1", "hello", users=["U1"])

    assert exc_info.value.code == 201
    assert "non-JSON" in exc_info.value.message
