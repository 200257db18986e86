"""
Dog Spotter Backend — HTTP Route Tests
=======================================

What:  End-to-end request/response tests through the FastAPI app.
Why:   Checks routing, auth guards, status codes and the error envelope that
       clients depend on.
How:   httpx.AsyncClient over ASGITransport; the database dependency is bound
       to the in-memory SQLite engine and the breed predictor is a fake.

What we test:
    ✅ Health endpoint
    ✅ Register / login / me / validate
    ✅ Dog CRUD with ownership (404 envelope for non-owners)
    ✅ Listing, search and map query handling
    ✅ Upload, serving and deletion of images
    ✅ Profile, stats and account deletion
"""

import uuid

import pytest

from dogspotter.exceptions import NotFoundOrForbiddenError
from dogspotter.services.breed_predictor import PredictionResult

PASSWORD = "secret123"


async def _register(client, email="ana@example.com", name="Ana"):
    response = await client.post(
        "/api/auth/register",
        json={"email": email, "password": PASSWORD, "name": name},
    )
    assert response.status_code == 201, response.text
    body = response.json()
    return {"Authorization": f"Bearer {body['token']}"}, body["user"]


async def _create_dog(client, headers, **fields):
    payload = {"description": "Brown dog near the park", "latitude": -23.55, "longitude": -46.63}
    payload.update(fields)
    response = await client.post("/api/dogs", json=payload, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["dog"]


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
        assert body["ml_service"] == "available"

    @pytest.mark.asyncio
    async def test_degraded_when_classifier_down(self, test_client, fake_predictor):
        fake_predictor.health_check.return_value = False

        body = (await test_client.get("/health")).json()

        assert body["status"] == "degraded"
        assert body["ml_service"] == "unavailable"

    @pytest.mark.asyncio
    async def test_request_id_is_echoed(self, test_client):
        response = await test_client.get("/health", headers={"X-Request-ID": "abc12345"})
        assert response.headers["X-Request-ID"] == "abc12345"


class TestAuthRoutes:

    @pytest.mark.asyncio
    async def test_register_login_me(self, test_client):
        headers, user = await _register(test_client, email="Ana@Example.com")
        assert user["email"] == "ana@example.com"

        login = await test_client.post(
            "/api/auth/login", json={"email": "ANA@example.com", "password": PASSWORD}
        )
        assert login.status_code == 200
        assert login.json()["message"] == "Login successful"

        me = await test_client.get("/api/auth/me", headers=headers)
        assert me.status_code == 200
        assert me.json()["user"]["id"] == user["id"]

    @pytest.mark.asyncio
    async def test_duplicate_registration_conflicts(self, test_client):
        await _register(test_client)

        response = await test_client.post(
            "/api/auth/register",
            json={"email": "ANA@example.com", "password": PASSWORD},
        )

        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    @pytest.mark.asyncio
    async def test_wrong_password(self, test_client):
        await _register(test_client)

        response = await test_client.post(
            "/api/auth/login", json={"email": "ana@example.com", "password": "wrong-pass"}
        )

        assert response.status_code == 401
        assert response.json()["message"] == "Invalid credentials"

    @pytest.mark.asyncio
    async def test_me_without_token(self, test_client):
        response = await test_client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        body = response.json()
        assert body["error"] == "unauthorized"
        assert body["message"] == "Token not provided"
        assert "request_id" in body

    @pytest.mark.asyncio
    async def test_me_with_garbage_token(self, test_client):
        response = await test_client.get(
            "/api/auth/me", headers={"Authorization": "Bearer not-a-token"}
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token"

    @pytest.mark.asyncio
    async def test_validate(self, test_client):
        headers, user = await _register(test_client)
        token = headers["Authorization"].split(" ", 1)[1]

        valid = await test_client.post("/api/auth/validate", json={"token": token})
        invalid = await test_client.post("/api/auth/validate", json={"token": "nope"})

        assert valid.json() == {"valid": True, "user_id": user["id"]}
        assert invalid.json() == {"valid": False, "user_id": None}


class TestDogRoutes:

    @pytest.mark.asyncio
    async def test_create_and_get(self, test_client):
        headers, user = await _register(test_client)

        response = await test_client.post(
            "/api/dogs",
            json={"description": "Small white dog", "latitude": 1.0, "longitude": 2.0, "size": "small"},
            headers=headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Dog registered successfully"
        assert body["dog"]["status"] == "found"
        assert body["dog"]["owner"] == {"id": user["id"], "name": "Ana", "email": "ana@example.com"}

        fetched = await test_client.get(f"/api/dogs/{body['dog']['id']}")
        assert fetched.status_code == 200
        assert fetched.json()["dog"]["description"] == "Small white dog"

    @pytest.mark.asyncio
    async def test_create_requires_token(self, test_client):
        response = await test_client.post(
            "/api/dogs", json={"description": "x", "latitude": 0, "longitude": 0}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_create_uses_predicted_breed(self, test_client, fake_predictor):
        fake_predictor.predict.return_value = PredictionResult(breed="Beagle", confidence=0.7)
        headers, _ = await _register(test_client)

        dog = await _create_dog(test_client, headers, image_url="http://test/api/files/x.jpg")

        assert dog["breed"] == "Beagle"

    @pytest.mark.asyncio
    async def test_create_survives_predictor_failure(self, test_client, fake_predictor):
        fake_predictor.predict.side_effect = RuntimeError("down")
        headers, _ = await _register(test_client)

        dog = await _create_dog(test_client, headers, image_url="http://test/api/files/x.jpg")

        assert dog["breed"] is None

    @pytest.mark.asyncio
    async def test_unknown_dog_is_404(self, test_client):
        response = await test_client.get(f"/api/dogs/{uuid.uuid4()}")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_owner_updates_and_deletes(self, test_client):
        headers, _ = await _register(test_client)
        dog = await _create_dog(test_client, headers)

        updated = await test_client.put(
            f"/api/dogs/{dog['id']}", json={"status": "lost", "color": "brown"}, headers=headers
        )
        assert updated.status_code == 200
        assert updated.json()["message"] == "Dog updated successfully"
        assert updated.json()["dog"]["status"] == "lost"
        assert updated.json()["dog"]["description"] == dog["description"]

        deleted = await test_client.delete(f"/api/dogs/{dog['id']}", headers=headers)
        assert deleted.status_code == 200
        assert deleted.json()["message"] == "Dog removed successfully"

        assert (await test_client.get(f"/api/dogs/{dog['id']}")).status_code == 404

    @pytest.mark.asyncio
    async def test_non_owner_gets_same_404_as_missing(self, test_client):
        owner_headers, _ = await _register(test_client)
        other_headers, _ = await _register(test_client, email="bob@example.com", name="Bob")
        dog = await _create_dog(test_client, owner_headers, description="original")

        not_owned = await test_client.put(
            f"/api/dogs/{dog['id']}", json={"description": "hijacked"}, headers=other_headers
        )
        missing = await test_client.delete(f"/api/dogs/{uuid.uuid4()}", headers=other_headers)

        for response in (not_owned, missing):
            assert response.status_code == 404
            assert response.json()["error"] == "not_found_or_forbidden"
            assert response.json()["message"] == NotFoundOrForbiddenError.MESSAGE

        still = await test_client.get(f"/api/dogs/{dog['id']}")
        assert still.json()["dog"]["description"] == "original"

    @pytest.mark.asyncio
    async def test_list_with_bad_paging_uses_defaults(self, test_client):
        headers, _ = await _register(test_client)
        await _create_dog(test_client, headers)

        response = await test_client.get("/api/dogs", params={"page": "abc", "limit": "-3"})

        assert response.status_code == 200
        body = response.json()
        assert body["pagination"] == {"page": 1, "limit": 50, "total": 1, "total_pages": 1}
        assert body["dogs"][0]["owner"]["name"] == "Ana"
        assert "email" not in body["dogs"][0]["owner"]

    @pytest.mark.asyncio
    async def test_search(self, test_client):
        headers, _ = await _register(test_client)
        await _create_dog(test_client, headers, description="Labrador near metro", status="lost")
        await _create_dog(test_client, headers, description="Poodle", latitude=-22.9, longitude=-43.17)

        everything = await test_client.get("/api/dogs/search")
        by_text = await test_client.get("/api/dogs/search", params={"q": "labrador"})
        nearby = await test_client.get(
            "/api/dogs/search", params={"lat": -23.55, "lng": -46.63, "radius": 10}
        )
        paged = await test_client.get("/api/dogs/search", params={"page": 1, "limit": 1})

        assert len(everything.json()["dogs"]) == 2
        assert everything.json()["pagination"] is None
        assert [d["description"] for d in by_text.json()["dogs"]] == ["Labrador near metro"]
        assert [d["description"] for d in nearby.json()["dogs"]] == ["Labrador near metro"]
        assert len(paged.json()["dogs"]) == 1
        assert paged.json()["pagination"]["total"] == 2

    @pytest.mark.asyncio
    async def test_map_markers(self, test_client):
        headers, _ = await _register(test_client)
        await _create_dog(test_client, headers, latitude=-23.5, longitude=-46.6)
        await _create_dog(test_client, headers, latitude=10.0, longitude=10.0)

        all_markers = await test_client.get("/api/dogs/map")
        in_bounds = await test_client.get(
            "/api/dogs/map", params={"north": -23, "south": -24, "east": -46, "west": -47}
        )
        partial_bounds = await test_client.get("/api/dogs/map", params={"north": -23})

        assert len(all_markers.json()["markers"]) == 2
        assert len(in_bounds.json()["markers"]) == 1
        assert "owner" not in in_bounds.json()["markers"][0]
        assert len(partial_bounds.json()["markers"]) == 2

    @pytest.mark.asyncio
    async def test_my_dogs(self, test_client):
        headers, _ = await _register(test_client)
        other_headers, _ = await _register(test_client, email="bob@example.com")
        await _create_dog(test_client, headers, description="mine")
        await _create_dog(test_client, other_headers, description="theirs")

        response = await test_client.get("/api/dogs/my", headers=headers)

        assert [d["description"] for d in response.json()["dogs"]] == ["mine"]

    @pytest.mark.asyncio
    async def test_seeded_owner_sees_own_dogs_newest_first(
        self, test_client, user_factory, dog_factory, auth_headers_for
    ):
        owner = await user_factory()
        await dog_factory(owner, age_minutes=30, description="older")
        await dog_factory(owner, age_minutes=0, description="newer")

        response = await test_client.get("/api/dogs/my", headers=auth_headers_for(owner))

        assert response.status_code == 200
        assert [d["description"] for d in response.json()["dogs"]] == ["newer", "older"]


class TestUploadRoutes:

    @pytest.mark.asyncio
    async def test_upload_serve_delete(self, test_client, sample_image_bytes):
        headers, _ = await _register(test_client)

        uploaded = await test_client.post(
            "/api/upload",
            files={"image": ("dog.jpg", sample_image_bytes, "image/jpeg")},
            headers=headers,
        )
        assert uploaded.status_code == 200, uploaded.text
        image_url = uploaded.json()["image_url"]
        assert image_url.startswith("http://test/api/files/")

        served = await test_client.get(image_url.replace("http://test", ""))
        assert served.status_code == 200
        assert served.content == sample_image_bytes

        deleted = await test_client.request(
            "DELETE", "/api/upload", json={"image_url": image_url}, headers=headers
        )
        assert deleted.status_code == 200

        again = await test_client.request(
            "DELETE", "/api/upload", json={"image_url": image_url}, headers=headers
        )
        assert again.status_code == 404

    @pytest.mark.asyncio
    async def test_upload_rejects_non_image(self, test_client):
        headers, _ = await _register(test_client)

        response = await test_client.post(
            "/api/upload",
            files={"image": ("notes.txt", b"hello", "text/plain")},
            headers=headers,
        )

        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"
        assert response.json()["message"] == "Only image files are allowed"

    @pytest.mark.asyncio
    async def test_upload_requires_token(self, test_client, sample_image_bytes):
        response = await test_client.post(
            "/api/upload", files={"image": ("dog.jpg", sample_image_bytes, "image/jpeg")}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_missing_file_is_404(self, test_client):
        response = await test_client.get("/api/files/2020/01/01/nothing.jpg")
        assert response.status_code == 404


class TestUserRoutes:

    @pytest.mark.asyncio
    async def test_profile_and_stats(self, test_client):
        headers, _ = await _register(test_client)
        await _create_dog(test_client, headers, status="lost")
        await _create_dog(test_client, headers)

        profile = await test_client.get("/api/users/me", headers=headers)
        stats = await test_client.get("/api/users/me/stats", headers=headers)

        assert profile.json()["user"]["dog_count"] == 2
        assert "password" not in profile.json()["user"]
        assert stats.json()["stats"] == {"total_dogs": 2, "dogs_found": 1, "dogs_lost": 1}

    @pytest.mark.asyncio
    async def test_change_password_then_login(self, test_client):
        headers, _ = await _register(test_client)

        wrong = await test_client.put(
            "/api/users/me/password",
            json={"current_password": "bad", "new_password": "newsecret1"},
            headers=headers,
        )
        changed = await test_client.put(
            "/api/users/me/password",
            json={"current_password": PASSWORD, "new_password": "newsecret1"},
            headers=headers,
        )
        login = await test_client.post(
            "/api/auth/login", json={"email": "ana@example.com", "password": "newsecret1"}
        )

        assert wrong.status_code == 400
        assert changed.status_code == 200
        assert login.status_code == 200

    @pytest.mark.asyncio
    async def test_delete_account_removes_dogs(self, test_client):
        headers, _ = await _register(test_client)
        await _create_dog(test_client, headers)

        deleted = await test_client.delete("/api/users/me", headers=headers)
        listing = await test_client.get("/api/dogs")
        me = await test_client.get("/api/auth/me", headers=headers)

        assert deleted.status_code == 200
        assert listing.json()["pagination"]["total"] == 0
        assert me.status_code == 401
        assert me.json()["message"] == "User not found"
