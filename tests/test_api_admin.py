"""Admin endpoints: products, customers, bulk import."""

import json

import pytest

API = "/api/v1"

CSV = (
    b"Reference,Size,Brand,Wholesale Price,Stock,Barcode\n"
    b"SHIRT-1,M,Acme,1500,12,111\n"
    b"SHIRT-1,M,Acme,1500,3,111\n"
    b"DRESS-9,S,Bloom,9000,2,\n"
)


def _upload(content=CSV, filename="products.csv"):
    return {"file": (filename, content, "text/csv")}


class TestProductEndpoints:
    def test_create_get_update_delete(self, client):
        resp = client.post(
            f"{API}/products",
            json={"reference": " SHIRT-1 ", "size": "M", "wholesale_price": "1500", "stock": 4},
        )
        assert resp.status_code == 201
        product = resp.json()
        assert product["reference"] == "SHIRT-1"
        assert product["available_stock"] == 4

        resp = client.patch(f"{API}/products/{product['id']}", json={"stock": 9, "brand": "Acme"})
        assert resp.json()["stock"] == 9
        assert resp.json()["brand"] == "Acme"

        assert client.delete(f"{API}/products/{product['id']}").status_code == 204
        assert client.get(f"{API}/products/{product['id']}").status_code == 404

    def test_duplicate_variant_is_409(self, client):
        body = {"reference": "SHIRT-1", "size": "M"}
        assert client.post(f"{API}/products", json=body).status_code == 201
        assert client.post(f"{API}/products", json=body).status_code == 409

    def test_negative_stock_rejected(self, client):
        resp = client.post(f"{API}/products", json={"reference": "A", "size": "M", "stock": -1})
        assert resp.status_code == 422

    def test_list_paginates_and_searches(self, client, make_product):
        for i in range(5):
            make_product(reference=f"R{i}", size="U", description="cotton" if i % 2 else "linen")

        page = client.get(f"{API}/products", params={"per_page": 2, "page": 2}).json()
        assert page["total"] == 5
        assert page["pages"] == 3
        assert [p["reference"] for p in page["items"]] == ["R2", "R3"]

        found = client.get(f"{API}/products", params={"search": "linen"}).json()
        assert [p["reference"] for p in found["items"]] == ["R0", "R2", "R4"]


class TestCustomerEndpoints:
    BODY = {
        "id": "obi-traders",
        "business_name": "Obi Traders",
        "contact_name": "Ada Obi",
        "email": "ada@example.com",
        "phone": "0801",
    }

    def test_register_and_link(self, client):
        resp = client.post(f"{API}/customers", json=self.BODY)
        assert resp.status_code == 201
        assert resp.json()["business_name"] == "Obi Traders"

        link = client.get(f"{API}/customers/obi-traders/link").json()
        assert link == {"customer_id": "obi-traders", "url": "https://shop.example.com/customer/obi-traders"}

    def test_register_again_updates(self, client):
        client.post(f"{API}/customers", json=self.BODY)
        client.post(f"{API}/customers", json={**self.BODY, "contact_name": "Chidi"})

        customers = client.get(f"{API}/customers").json()
        assert len(customers) == 1
        assert customers[0]["contact_name"] == "Chidi"

    def test_invalid_id_and_unknown(self, client):
        assert client.post(f"{API}/customers", json={**self.BODY, "id": "has space"}).status_code == 422
        assert client.get(f"{API}/customers/nobody").status_code == 404
        assert client.get(f"{API}/customers/nobody/orders").status_code == 404

    def test_checkout_by_customer_id(self, client, make_product):
        product = make_product(stock=3)
        client.post(f"{API}/customers", json=self.BODY)
        cart_id = client.post(f"{API}/carts").json()["cart_id"]
        client.post(f"{API}/carts/{cart_id}/items", json={"product_id": product.id, "quantity": 1})

        resp = client.post(f"{API}/carts/{cart_id}/checkout", json={"customer_id": "obi-traders"})
        assert resp.status_code == 201

        orders = client.get(f"{API}/customers/obi-traders/orders").json()
        assert [o["customer_company"] for o in orders] == ["Obi Traders"]


class TestImportEndpoints:
    def test_preview_suggests_mapping(self, client):
        resp = client.post(f"{API}/imports/preview", files=_upload())

        assert resp.status_code == 200
        data = resp.json()
        assert data["total_rows"] == 3
        assert data["mapping"]["reference"] == "Reference"
        assert data["mapping"]["bar_code"] == "Barcode"
        assert data["mapping"]["image_url"] is None
        assert len(data["rows"]) == 3

    def test_import_with_auto_mapping(self, client):
        resp = client.post(f"{API}/imports/products", files=_upload())

        assert resp.status_code == 200
        data = resp.json()
        assert (data["success"], data["merged"], data["completed"]) == (2, 1, True)
        assert data["message"] == "Import completed! 2 new, 0 updated, 0 skipped, 1 merged by barcode."

        products = client.get(f"{API}/products", params={"search": "SHIRT"}).json()["items"]
        assert products[0]["stock"] == 15

    def test_update_mode(self, client, make_product):
        make_product(reference="DRESS-9", size="S", stock=10, wholesale_price="8000")
        resp = client.post(f"{API}/imports/products", files=_upload(), data={"mode": "update"})

        assert resp.json()["updated"] == 1

    def test_explicit_mapping_missing_size(self, client):
        mapping = json.dumps({"reference": "Reference", "size": "not_mapped"})
        resp = client.post(f"{API}/imports/products", files=_upload(), data={"mapping": mapping})

        assert resp.status_code == 422
        assert resp.json()["code"] == "MISSING_REQUIRED_MAPPING"

    @pytest.mark.parametrize("raw", ["not json", "[1, 2]"])
    def test_malformed_mapping(self, client, raw):
        resp = client.post(f"{API}/imports/products", files=_upload(), data={"mapping": raw})
        assert resp.json()["code"] == "INVALID_MAPPING"

    def test_header_only_file(self, client):
        resp = client.post(f"{API}/imports/preview", files=_upload(b"Reference,Size\n"))

        assert resp.status_code == 422
        assert resp.json()["detail"] == "File must contain at least a header row and one data row"
