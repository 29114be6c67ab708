"""
Letterhead and hospital profile JSON API.
"""


def _create(client, **body):
    res = client.post("/api/letterheads", json={"name": "Main", **body})
    assert res.status_code == 201, res.text
    return res.json()["data"]


class TestLetterheadRoutes:

    def test_create_and_list(self, client):
        tpl = _create(client, type="report", isDefault=True)
        assert tpl["id"].startswith("tpl_")
        assert tpl["isDefault"] is True
        assert len(tpl["elements"]) == 5

        listed = client.get("/api/letterheads").json()
        assert listed["meta"] == {"count": 1}
        assert listed["data"][0]["id"] == tpl["id"]

    def test_update(self, client):
        tpl = _create(client)
        res = client.patch(f"/api/letterheads/{tpl['id']}",
                           json={"name": "Renamed",
                                 "settings": {"primaryColor": "#000000"}})
        data = res.json()["data"]
        assert data["name"] == "Renamed"
        assert data["settings"]["primaryColor"] == "#000000"
        assert data["createdAt"] == tpl["createdAt"]

    def test_unknown_template(self, client):
        for res in (
                client.get("/api/letterheads/tpl_nope"),
                client.patch("/api/letterheads/tpl_nope", json={"name": "x"}),
                client.delete("/api/letterheads/tpl_nope"),
        ):
            assert res.status_code == 404
            assert res.json()["error"]["msg"] == "Template not found"

    def test_delete(self, client):
        tpl = _create(client)
        res = client.delete(f"/api/letterheads/{tpl['id']}")
        assert res.json()["data"] == {"id": tpl["id"], "deleted": True}
        assert client.get("/api/letterheads").json()["data"] == []

    def test_presets(self, client):
        assert client.get("/api/letterheads/presets").json()["data"] == [
            "bold", "classic", "default", "left"
        ]
        tpl = _create(client)
        res = client.post(f"/api/letterheads/{tpl['id']}/preset/classic")
        assert res.json()["data"]["name"] == "Classic Centered"

        res = client.post(f"/api/letterheads/{tpl['id']}/preset/neon")
        assert res.status_code == 400
        assert res.json()["error"]["msg"] == "Unknown preset: neon"

    def test_element_lifecycle(self, client):
        tpl = _create(client)
        base = f"/api/letterheads/{tpl['id']}/elements"

        res = client.post(base, json={"type": "field", "field": "gstin",
                                      "label": "GSTIN:"})
        assert res.status_code == 201
        added = res.json()["data"]["elements"][-1]
        assert added["field"] == "gstin"

        res = client.patch(f"{base}/{added['id']}",
                           json={"position": {"x": 300, "y": 90}})
        moved = res.json()["data"]["elements"][-1]
        assert moved["position"] == {"x": 300, "y": 90}

        res = client.delete(f"{base}/{added['id']}")
        ids = [e["id"] for e in res.json()["data"]["elements"]]
        assert added["id"] not in ids

        res = client.delete(f"{base}/{added['id']}")
        assert res.status_code == 404

    def test_bad_element_type(self, client):
        tpl = _create(client)
        res = client.post(f"/api/letterheads/{tpl['id']}/elements",
                          json={"type": "video"})
        assert res.status_code == 422

    def test_render_page(self, client):
        client.put("/api/hospitals/H9/profile",
                   json={"displayName": "Sunrise Labs",
                         "settings": {"footerNote": "Open all days"}})
        tpl = _create(client)
        res = client.get(f"/api/letterheads/{tpl['id']}/render",
                         params={"hospital_id": "H9"})
        assert res.status_code == 200
        assert "Sunrise Labs" in res.text
        assert "Open all days" in res.text

    def test_render_without_profile_uses_placeholders(self, client):
        tpl = _create(client)
        res = client.get(f"/api/letterheads/{tpl['id']}/render")
        assert "Hospital Name" in res.text


class TestHospitalProfileRoutes:

    def test_default_profile(self, client):
        body = client.get("/api/hospitals/H1/profile").json()
        assert body["meta"] == {"stored": False}
        assert body["data"]["name"] == "Hospital Name"

    def test_save_admin_shape(self, client):
        res = client.put("/api/hospitals/H1/profile",
                         json={
                             "displayName": "City Care",
                             "phoneNumbers": ["0422 123456"],
                             "gstNumber": "G-1",
                         })
        assert res.json()["data"]["phone"] == "0422 123456"

        body = client.get("/api/hospitals/H1/profile").json()
        assert body["meta"] == {"stored": True}
        assert body["data"]["name"] == "City Care"
        assert body["data"]["gstin"] == "G-1"
