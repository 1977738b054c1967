"""
DevCamper Backend — API Endpoint Tests
========================================

What:  HTTP-level tests through httpx ASGITransport: routing, envelopes,
       status codes and the error body shape.
How:   get_db_session is overridden to use the in-memory test engine;
       the geocoder is FakeGeocoder.
"""

import uuid

import pytest

API = "/api/v1"

BOOTCAMP = {
    "name": "Devworks Bootcamp",
    "description": "Full stack JavaScript bootcamp in Boston",
    "website": "https://devworks.com",
    "phone": "(111) 111-1111",
    "email": "enroll@devworks.com",
    "address": "233 Bay State Rd Boston MA 02215",
    "careers": ["Web Development", "UI/UX", "Business"],
    "housing": True,
    "job_assistance": True,
}

COURSE = {
    "title": "Front End Web Development",
    "description": "HTML, CSS and JavaScript",
    "weeks": "8",
    "tuition": 8000,
    "minimum_skill": "beginner",
}


async def create_bootcamp(client, **overrides):
    response = await client.post(f"{API}/bootcamps", json={**BOOTCAMP, **overrides})
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["geocoder"] == "available"


class TestBootcampEndpoints:

    @pytest.mark.asyncio
    async def test_create_and_get(self, test_client, fake_geocoder):
        created = await create_bootcamp(test_client)
        assert created["slug"] == "devworks-bootcamp"
        assert created["location"]["zipcode"] == "02215"
        assert "address" not in created

        response = await test_client.get(f"{API}/bootcamps/{created['id']}")
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["id"] == created["id"]
        assert body["data"]["careers"] == ["Web Development", "UI/UX", "Business"]
        assert body["data"]["location"] == created["location"]

    @pytest.mark.asyncio
    async def test_list_envelope_with_courses(self, test_client, fake_geocoder):
        bootcamp = await create_bootcamp(test_client)
        await test_client.post(f"{API}/bootcamps/{bootcamp['id']}/courses", json=COURSE)

        response = await test_client.get(f"{API}/bootcamps", params={"select": "name,housing"})

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["count"] == 1
        assert body["pagination"] == {}
        record = body["data"][0]
        assert set(record) == {"id", "name", "housing", "courses"}
        assert record["courses"][0]["title"] == "Front End Web Development"

    @pytest.mark.asyncio
    async def test_list_pagination_and_filters(self, test_client, seed_bootcamps):
        await seed_bootcamps(12)

        response = await test_client.get(
            f"{API}/bootcamps",
            params={"average_cost[lte]": "10000", "page": "2", "limit": "4", "select": "name"},
        )

        body = response.json()
        assert body["count"] == 4
        assert body["pagination"] == {
            "next": {"page": 3, "limit": 4},
            "prev": {"page": 1, "limit": 4},
        }
        assert [r["name"] for r in body["data"]] == ["Bootcamp 05", "Bootcamp 04", "Bootcamp 03", "Bootcamp 02"]

    @pytest.mark.asyncio
    async def test_invalid_filter_value(self, test_client):
        response = await test_client.get(
            f"{API}/bootcamps",
            params={"average_cost[gt]": "cheap"},
            headers={"X-Request-ID": "req-1234"},
        )

        assert response.status_code == 400
        assert response.headers["X-Request-ID"] == "req-1234"
        body = response.json()
        assert body["success"] is False
        assert body["error"] == "validation_error"
        assert body["details"]["field"] == "average_cost"
        assert body["request_id"] == "req-1234"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "params",
        [
            {"page": "99999999999999999999", "limit": "10"},
            {"limit": "99999999999999999999"},
        ],
    )
    async def test_oversized_paging_is_not_a_server_error(self, test_client, seed_bootcamps, params):
        await seed_bootcamps(3)

        response = await test_client.get(f"{API}/bootcamps", params=params)

        assert response.status_code == 200
        assert response.json()["count"] == 3

    @pytest.mark.asyncio
    async def test_sort_on_json_field_is_400(self, test_client):
        response = await test_client.get(f"{API}/bootcamps", params={"sort": "careers"})

        assert response.status_code == 400
        assert response.json()["details"]["field"] == "careers"

    @pytest.mark.asyncio
    async def test_malformed_id_is_404(self, test_client):
        response = await test_client.get(f"{API}/bootcamps/5d713995b721c3bb38c1f5d0")
        assert response.status_code == 404
        assert response.json()["message"] == "Bootcamp not found with id of 5d713995b721c3bb38c1f5d0"

    @pytest.mark.asyncio
    async def test_body_validation_lists_messages(self, test_client, fake_geocoder):
        response = await test_client.post(f"{API}/bootcamps", json={"name": "x" * 51})

        assert response.status_code == 400
        body = response.json()
        assert isinstance(body["message"], list)
        assert "Name can not be more than 50 characters" in body["message"]
        assert fake_geocoder.calls == []

    @pytest.mark.asyncio
    async def test_duplicate_name(self, test_client, fake_geocoder):
        await create_bootcamp(test_client)
        response = await test_client.post(f"{API}/bootcamps", json=BOOTCAMP)

        assert response.status_code == 400
        assert response.json()["message"] == "Duplicate field value entered"

    @pytest.mark.asyncio
    async def test_update(self, test_client, fake_geocoder):
        created = await create_bootcamp(test_client)

        response = await test_client.put(
            f"{API}/bootcamps/{created['id']}",
            json={"name": "Devworks Reloaded", "job_guarantee": True},
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["slug"] == "devworks-reloaded"
        assert data["job_guarantee"] is True

    @pytest.mark.asyncio
    async def test_delete_removes_courses(self, test_client, fake_geocoder):
        bootcamp = await create_bootcamp(test_client)
        await test_client.post(f"{API}/bootcamps/{bootcamp['id']}/courses", json=COURSE)

        response = await test_client.delete(f"{API}/bootcamps/{bootcamp['id']}")
        assert response.status_code == 200
        assert response.json() == {"success": True, "data": {}}

        courses = await test_client.get(f"{API}/courses")
        assert courses.json()["count"] == 0

    @pytest.mark.asyncio
    async def test_radius(self, test_client, fake_geocoder):
        await create_bootcamp(test_client)
        await create_bootcamp(
            test_client,
            name="Codemasters",
            address="85 South Prospect Street Burlington VT 05405",
        )

        response = await test_client.get(f"{API}/bootcamps/radius/02215/50")

        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 1
        assert body["data"][0]["name"] == "Devworks Bootcamp"

    @pytest.mark.asyncio
    async def test_radius_rejects_non_positive_distance(self, test_client, fake_geocoder):
        response = await test_client.get(f"{API}/bootcamps/radius/02215/0")
        assert response.status_code == 400


class TestCourseEndpoints:

    @pytest.mark.asyncio
    async def test_nested_create_and_list(self, test_client, fake_geocoder):
        bootcamp = await create_bootcamp(test_client)

        created = await test_client.post(f"{API}/bootcamps/{bootcamp['id']}/courses", json=COURSE)
        assert created.status_code == 201
        assert created.json()["data"]["bootcamp_id"] == bootcamp["id"]

        listed = await test_client.get(f"{API}/bootcamps/{bootcamp['id']}/courses")
        body = listed.json()
        assert body["count"] == 1
        assert body["data"][0]["bootcamp"]["name"] == "Devworks Bootcamp"

    @pytest.mark.asyncio
    async def test_nested_list_unknown_bootcamp(self, test_client):
        response = await test_client.get(f"{API}/bootcamps/{uuid.uuid4()}/courses")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_get_update_delete(self, test_client, fake_geocoder):
        bootcamp = await create_bootcamp(test_client)
        course = (
            await test_client.post(f"{API}/bootcamps/{bootcamp['id']}/courses", json=COURSE)
        ).json()["data"]

        detail = await test_client.get(f"{API}/courses/{course['id']}")
        assert detail.status_code == 200
        assert detail.json()["data"]["bootcamp"]["name"] == "Devworks Bootcamp"

        updated = await test_client.put(f"{API}/courses/{course['id']}", json={"weeks": "10"})
        assert updated.json()["data"]["weeks"] == "10"

        deleted = await test_client.delete(f"{API}/courses/{course['id']}")
        assert deleted.json() == {"success": True, "data": {}}

        missing = await test_client.get(f"{API}/courses/{course['id']}")
        assert missing.status_code == 404

    @pytest.mark.asyncio
    async def test_invalid_skill_level(self, test_client, fake_geocoder):
        bootcamp = await create_bootcamp(test_client)
        response = await test_client.post(
            f"{API}/bootcamps/{bootcamp['id']}/courses",
            json={**COURSE, "minimum_skill": "guru"},
        )
        assert response.status_code == 400
