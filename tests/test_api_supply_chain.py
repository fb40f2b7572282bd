import os
import re

import pytest


@pytest.fixture
def material_request(client, admin_headers):
    response = client.post("/material-requests/", json={
        "requester_name": "Maria Lopez",
        "department": "Production",
        "request_date": "2024-03-01",
        "items": [
            {"item_name": "Bearing 6204", "quantity": 4, "unit": "pcs"},
            {"item_name": "Hydraulic oil", "quantity": 20, "unit": "L", "description": "ISO VG 46"},
        ],
    }, headers=admin_headers)
    assert response.status_code == 201
    return response.json()


def invoice_body(**overrides):
    return {
        "supplier_name": "Bearings Inc",
        "invoice_number": "INV-77",
        "total_amount": 1250.5,
        "currency": "USD",
        "issue_date": "2024-03-02",
        "expiry_date": "2024-04-02",
        **overrides,
    }


class TestMaterialRequests:
    def test_create_assigns_reference_and_items(self, material_request):
        assert re.fullmatch(r"PO-\d{4}-\d{4}", material_request["request_id"])
        assert material_request["status"] == "pending"
        assert [item["item_name"] for item in material_request["items"]] == ["Bearing 6204", "Hydraulic oil"]

    def test_pagination_and_search(self, client, admin_headers, material_request):
        client.post("/material-requests/", json={
            "requester_name": "John Smith", "department": "Quality", "request_date": "2024-03-05",
        }, headers=admin_headers)

        page = client.get("/material-requests/", params={"limit": 1}, headers=admin_headers).json()
        assert page["count"] == 2
        assert page["page"] == 1
        assert len(page["data"]) == 1
        assert page["data"][0]["requester_name"] == "John Smith"

        found = client.get("/material-requests/", params={"search": "maria"}, headers=admin_headers).json()
        assert [r["id"] for r in found["data"]] == [material_request["id"]]

    def test_unknown_sort_field(self, client, admin_headers):
        response = client.get("/material-requests/", params={"sort_by": "id; DROP TABLE users"},
                              headers=admin_headers)
        assert response.status_code == 400

    def test_approve_and_reject_need_a_reviewer(self, client, admin_headers, technician_headers, material_request):
        url = f"/material-requests/{material_request['id']}"

        assert client.put(f"{url}/approve", json={}, headers=technician_headers).status_code == 403

        approved = client.put(f"{url}/approve", json={"notes": "OK"}, headers=admin_headers).json()
        assert approved["status"] == "approved"
        assert approved["notes"] == "OK"

        rejected = client.put(f"{url}/reject", json={"notes": "Budget"}, headers=admin_headers).json()
        assert rejected["status"] == "rejected"

    def test_item_lifecycle(self, client, admin_headers, material_request):
        url = f"/material-requests/{material_request['id']}"

        request = client.post(f"{url}/items", json={"item_name": "Seal kit", "quantity": 1, "unit": "set"},
                              headers=admin_headers).json()
        assert len(request["items"]) == 3

        item_id = request["items"][0]["id"]
        item = client.put(f"/material-requests/items/{item_id}", json={"quantity": 8}, headers=admin_headers).json()
        assert item["quantity"] == 8

        client.delete(f"/material-requests/items/{item_id}", headers=admin_headers)
        assert len(client.get(url, headers=admin_headers).json()["items"]) == 2

    def test_item_quantity_must_be_positive(self, client, admin_headers, material_request):
        response = client.post(f"/material-requests/{material_request['id']}/items",
                               json={"item_name": "Nothing", "quantity": 0, "unit": "pcs"}, headers=admin_headers)
        assert response.status_code == 422

    def test_delete_cascades_to_items(self, client, admin_headers, material_request, db):
        client.delete(f"/material-requests/{material_request['id']}", headers=admin_headers)

        remaining = db.execute("SELECT COUNT(*) FROM material_request_items").fetchone()[0]
        assert remaining == 0
        assert client.get(f"/material-requests/{material_request['id']}",
                          headers=admin_headers).status_code == 404


class TestProformaInvoices:
    def test_create_and_mark_paid(self, client, admin_headers):
        invoice = client.post("/proforma-invoices/", json=invoice_body(), headers=admin_headers).json()

        assert re.fullmatch(r"PI-\d{4}-\d{4}", invoice["pi_id"])
        assert invoice["payment_status"] == "pending"

        paid = client.put(f"/proforma-invoices/{invoice['id']}/paid", headers=admin_headers).json()
        assert paid["payment_status"] == "paid"

        canceled = client.put(f"/proforma-invoices/{invoice['id']}/cancel", headers=admin_headers).json()
        assert canceled["payment_status"] == "canceled"

    def test_filter_by_status(self, client, admin_headers):
        first = client.post("/proforma-invoices/", json=invoice_body(), headers=admin_headers).json()
        client.post("/proforma-invoices/", json=invoice_body(invoice_number="INV-78"), headers=admin_headers)
        client.put(f"/proforma-invoices/{first['id']}/paid", headers=admin_headers)

        paid = client.get("/proforma-invoices/", params={"status": "paid"}, headers=admin_headers).json()
        assert paid["count"] == 1
        assert paid["data"][0]["id"] == first["id"]

    def test_technicians_cannot_manage_invoices(self, client, technician_headers):
        response = client.post("/proforma-invoices/", json=invoice_body(), headers=technician_headers)
        assert response.status_code == 403

    def test_unknown_invoice(self, client, admin_headers):
        assert client.put("/proforma-invoices/missing/paid", headers=admin_headers).status_code == 404


class TestDocumentUpload:
    def upload(self, client, headers, content=b"%PDF-1.4 test", content_type="application/pdf",
               filename="quote 1.pdf"):
        return client.post(
            "/upload",
            data={k: str(v) for k, v in invoice_body().items()},
            files={"document": (filename, content, content_type)},
            headers=headers,
        )

    def test_upload_stores_file_and_creates_invoice(self, client, admin_headers, env):
        response = self.upload(client, admin_headers)

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["file"]["name"].endswith("_quote_1.pdf")
        assert body["data"]["document_url"] == body["file"]["path"]
        assert body["data"]["total_amount"] == 1250.5

        stored = env["upload_dir"] / body["file"]["name"]
        assert stored.read_bytes() == b"%PDF-1.4 test"

        served = client.get(body["file"]["path"])
        assert served.status_code == 200
        assert served.content == b"%PDF-1.4 test"

    def test_deleting_invoice_removes_document(self, client, admin_headers, env):
        body = self.upload(client, admin_headers).json()
        stored = env["upload_dir"] / body["file"]["name"]

        client.delete(f"/proforma-invoices/{body['data']['id']}", headers=admin_headers)

        assert not os.path.exists(stored)

    def test_rejects_unsupported_type(self, client, admin_headers):
        response = self.upload(client, admin_headers, content=b"MZ", content_type="application/x-msdownload",
                               filename="tool.exe")
        assert response.status_code == 400

    def test_rejects_oversize_file(self, client, admin_headers, env):
        response = self.upload(client, admin_headers, content=b"0" * (10 * 1024 * 1024 + 1))

        assert response.status_code == 413
        assert os.listdir(env["upload_dir"]) == []

    def test_missing_file(self, client, admin_headers):
        response = client.post("/upload", data={k: str(v) for k, v in invoice_body().items()},
                               headers=admin_headers)
        assert response.status_code == 400


class TestReferenceGeneration:
    def test_exhausted_retries_report_server_error(self, client, admin_headers, monkeypatch):
        monkeypatch.setattr("cmms_app.proforma_invoices.generate_reference", lambda prefix: f"{prefix}-2024-0001")

        assert client.post("/proforma-invoices/", json=invoice_body(), headers=admin_headers).status_code == 201
        response = client.post("/proforma-invoices/", json=invoice_body(), headers=admin_headers)
        assert response.status_code == 500
        assert response.json()["detail"] == "Could not generate unique invoice ID"

    def test_other_integrity_errors_are_conflicts(self, client, db):
        from fastapi import HTTPException

        from cmms_app.proforma_invoices import insert_invoice

        fields = {k: v for k, v in invoice_body().items() if k != "currency"}
        with pytest.raises(HTTPException) as excinfo:
            insert_invoice(db, fields, "someone")

        assert excinfo.value.status_code == 409
        assert "NOT NULL" in excinfo.value.detail

    def test_material_request_retries_then_fails(self, client, admin_headers, monkeypatch):
        monkeypatch.setattr("cmms_app.material_requests.generate_reference", lambda prefix: f"{prefix}-2024-0001")
        body = {"requester_name": "Ana", "department": "Quality", "request_date": "2024-03-01"}

        assert client.post("/material-requests/", json=body, headers=admin_headers).status_code == 201
        assert client.post("/material-requests/", json=body, headers=admin_headers).status_code == 500


def test_upload_handler_runs_in_the_threadpool():
    import inspect

    from cmms_app.proforma_invoices import upload_invoice_document

    assert not inspect.iscoroutinefunction(upload_invoice_document)
