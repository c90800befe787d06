"""
API tests through FastAPI's TestClient.

Covers auth, the error body format, uploads and an end-to-end
follow / post / comment / like flow between two users.
"""

from unittest.mock import patch

from fastapi.testclient import TestClient

from app.main import app

MISSING_ID = "64b7f0000000000000000000"


class TestHealth:

    def test_health(self, client):
        with patch("app.main.test_mongo_connection", return_value=True):
            response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json()["status"] == "OK"
        assert response.json()["mongodb"] == "connected"


class TestAuth:

    def test_register_returns_token_without_hash(self, register):
        alice = register("alice")

        assert alice["token"]
        assert alice["user"]["username"] == "alice"
        assert "password_hash" not in alice["user"]

    def test_register_duplicate_conflicts(self, client, alice):
        payload = {"username": "alice", "email": "another@uni.edu", "password": "secret123", "full_name": "A"}

        response = client.post("/api/auth/register", json=payload)

        assert response.status_code == 409
        assert response.json() == {"message": "Username already taken"}

    def test_register_validation_body(self, client):
        payload = {"username": "ab", "email": "not-an-email", "password": "123", "full_name": "A"}

        response = client.post("/api/auth/register", json=payload)

        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Validation failed"
        fields = {error["field"] for error in body["errors"]}
        assert {"username", "email", "password"} <= fields
        assert all(error["message"] for error in body["errors"])

    def test_login(self, client, alice):
        response = client.post("/api/auth/login", json={"email": "ALICE@uni.edu", "password": "secret123"})

        assert response.status_code == 200
        assert response.json()["user"]["_id"] == alice["id"]

    def test_login_wrong_password(self, client, alice):
        response = client.post("/api/auth/login", json={"email": "alice@uni.edu", "password": "wrong"})

        assert response.status_code == 401
        assert response.json() == {"message": "Invalid credentials"}

    def test_me_requires_token(self, client):
        response = client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.json() == {"message": "No token, authorization denied"}

    def test_me_rejects_bad_token(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})

        assert response.status_code == 401
        assert response.json() == {"message": "Token is not valid"}

    def test_me(self, client, alice):
        response = client.get("/api/auth/me", headers=alice["headers"])

        assert response.status_code == 200
        assert response.json()["user"]["email"] == "alice@uni.edu"

    def test_json_profile_update(self, client, alice):
        response = client.put("/api/auth/profile", json={"bio": "Maths student", "full_name": ""},
                              headers=alice["headers"])

        assert response.status_code == 200
        user = response.json()["user"]
        assert user["bio"] == "Maths student"
        assert user["full_name"] == "Alice"

    def test_malformed_email_never_stored(self, client, alice):
        for email in ("alice@", "@x"):
            json_response = client.put("/api/auth/profile", json={"email": email}, headers=alice["headers"])
            form_response = client.put("/api/users/profile", data={"email": email}, headers=alice["headers"])

            assert json_response.status_code == 400
            assert json_response.json()["errors"][0]["field"] == "email"
            assert form_response.status_code == 400

        assert client.get("/api/auth/me", headers=alice["headers"]).json()["user"]["email"] == "alice@uni.edu"
        login = client.post("/api/auth/login", json={"email": "alice@uni.edu", "password": "secret123"})
        assert login.status_code == 200

    def test_email_change_allows_login(self, client, alice):
        response = client.put("/api/auth/profile", json={"email": "alice.new@uni.edu"}, headers=alice["headers"])

        assert response.status_code == 200
        login = client.post("/api/auth/login", json={"email": "alice.new@uni.edu", "password": "secret123"})
        assert login.status_code == 200


class TestUsers:

    def test_list_users_paginates(self, client, register):
        for name in ("amy", "ben", "cal"):
            register(name)

        response = client.get("/api/users", params={"limit": 2})

        assert response.status_code == 200
        assert response.json()["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}
        assert len(response.json()["users"]) == 2

    def test_unknown_user_is_404(self, client):
        assert client.get(f"/api/users/{MISSING_ID}").status_code == 404
        assert client.get("/api/users/not-an-id").json() == {"message": "User not found"}

    def test_self_follow_rejected(self, client, alice):
        response = client.post(f"/api/users/{alice['id']}/follow", headers=alice["headers"])

        assert response.status_code == 400
        assert response.json() == {"message": "You cannot follow yourself"}

    def test_follow_requires_token(self, client, alice):
        assert client.post(f"/api/users/{alice['id']}/follow").status_code == 401

    def test_unfollow_when_not_following(self, client, alice, bob):
        response = client.delete(f"/api/users/{alice['id']}/follow", headers=bob["headers"])

        assert response.status_code == 400
        assert response.json() == {"message": "Not following this user"}

    def test_avatar_upload(self, client, alice, mock_storage):
        response = client.put(
            "/api/users/profile",
            data={"bio": "hello"},
            files={"avatar": ("me.png", b"\x89PNG fake", "image/png")},
            headers=alice["headers"]
        )

        assert response.status_code == 200, response.text
        user = response.json()["user"]
        assert user["avatar"] == "https://cdn.test/avatar.png"
        assert user["bio"] == "hello"
        mock_storage.upload_avatar.assert_called_once()

    def test_avatar_must_be_image(self, client, alice, mock_storage):
        response = client.put(
            "/api/users/profile",
            data={"bio": "hello"},
            files={"avatar": ("notes.txt", b"plain text", "text/plain")},
            headers=alice["headers"]
        )

        assert response.status_code == 400
        assert response.json() == {"message": "Invalid file type. Only images are allowed."}
        mock_storage.upload_avatar.assert_not_called()

    def test_profile_username_taken(self, client, alice, bob):
        response = client.put("/api/users/profile", data={"username": "bob"}, headers=alice["headers"])

        assert response.status_code == 409

    def test_conflicting_update_uploads_nothing(self, client, alice, bob, mock_storage):
        response = client.put(
            "/api/users/profile",
            data={"username": "bob"},
            files={"avatar": ("me.png", b"\x89PNG fake", "image/png")},
            headers=alice["headers"]
        )

        assert response.status_code == 409
        assert response.json() == {"message": "Username already taken"}
        mock_storage.upload_avatar.assert_not_called()

    def test_avatar_upload_runs_in_threadpool(self, client, alice, mock_storage):
        offloaded = []

        async def recording(func, *args, **kwargs):
            offloaded.append(func)
            return func(*args, **kwargs)

        with patch("app.api.routes.user_routes.run_in_threadpool", new=recording):
            response = client.put(
                "/api/users/profile",
                data={"bio": "hello"},
                files={"avatar": ("me.png", b"\x89PNG fake", "image/png")},
                headers=alice["headers"]
            )

        assert response.status_code == 200
        assert mock_storage.upload_avatar in offloaded
        assert any(getattr(func, "__name__", "") == "update_profile" for func in offloaded)


class TestPosts:

    def test_create_requires_fields(self, client, alice):
        response = client.post("/api/posts", data={"content": "no title", "type": "note"},
                               headers=alice["headers"])

        assert response.status_code == 400
        fields = {error["field"] for error in response.json()["errors"]}
        assert {"title", "category"} <= fields

    def test_create_rejects_long_tag(self, client, alice):
        response = client.post("/api/posts", data={
            "title": "t", "content": "c", "type": "note", "category": "academic",
            "tags": "x" * 21
        }, headers=alice["headers"])

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "tags"

    def test_create_with_attachments(self, client, alice, mock_storage):
        files = [
            ("attachments", ("board.png", b"png bytes", "image/png")),
            ("attachments", ("slide.jpg", b"jpg bytes", "image/jpeg")),
        ]
        response = client.post("/api/posts", data={
            "title": "Lecture photos", "content": "Week 2", "type": "note", "category": "academic"
        }, files=files, headers=alice["headers"])

        assert response.status_code == 201, response.text
        attachments = response.json()["post"]["attachments"]
        assert attachments == [
            {"filename": "board.png", "url": "https://cdn.test/board.png", "type": "image/png"},
            {"filename": "slide.jpg", "url": "https://cdn.test/slide.jpg", "type": "image/jpeg"},
        ]

    def test_uploads_and_insert_run_in_threadpool(self, client, alice, mock_storage):
        offloaded = []

        async def recording(func, *args, **kwargs):
            offloaded.append(func)
            return func(*args, **kwargs)

        with patch("app.api.routes.post_routes.run_in_threadpool", new=recording):
            response = client.post("/api/posts", data={
                "title": "Lecture photos", "content": "Week 2", "type": "note", "category": "academic"
            }, files=[("attachments", ("board.png", b"png bytes", "image/png"))], headers=alice["headers"])

        assert response.status_code == 201
        assert mock_storage.upload_post_images in offloaded
        assert any(getattr(func, "__name__", "") == "create" for func in offloaded)

    def test_too_many_attachments(self, client, alice, mock_storage):
        files = [("attachments", (f"{i}.png", b"x", "image/png")) for i in range(6)]
        response = client.post("/api/posts", data={
            "title": "Too many", "content": "c", "type": "note", "category": "academic"
        }, files=files, headers=alice["headers"])

        assert response.status_code == 400
        mock_storage.upload_post_images.assert_not_called()

    def test_job_post_details(self, client, alice, create_post):
        post = create_post(alice, type="job", category="internship",
                           job_details='{"company": "Acme", "requirements": ["python"]}')

        assert post["job_details"]["company"] == "Acme"
        assert post["note_details"] is None

    def test_invalid_job_details_json(self, client, alice):
        response = client.post("/api/posts", data={
            "title": "Job", "content": "c", "type": "job", "category": "internship",
            "job_details": "{not json"
        }, headers=alice["headers"])

        assert response.status_code == 400

    def test_unknown_post_is_404(self, client):
        response = client.get(f"/api/posts/{MISSING_ID}")

        assert response.status_code == 404
        assert response.json() == {"message": "Post not found"}

    def test_views_count_every_fetch(self, client, alice, bob, create_post):
        post = create_post(alice)

        client.get(f"/api/posts/{post['_id']}")
        client.get(f"/api/posts/{post['_id']}", headers=bob["headers"])
        response = client.get(f"/api/posts/{post['_id']}", headers=alice["headers"])

        assert response.json()["post"]["views"] == 3

    def test_only_author_updates_and_deletes(self, client, alice, bob, create_post):
        post = create_post(alice)

        assert client.put(f"/api/posts/{post['_id']}", json={"title": "x"},
                          headers=bob["headers"]).status_code == 403
        response = client.delete(f"/api/posts/{post['_id']}", headers=bob["headers"])
        assert response.status_code == 403
        assert response.json() == {"message": "Not authorized to delete this post"}

        assert client.delete(f"/api/posts/{post['_id']}", headers=alice["headers"]).status_code == 200
        assert client.get(f"/api/posts/{post['_id']}").status_code == 404

    def test_private_post_hidden_from_feed(self, client, alice, bob, create_post):
        create_post(alice, title="public")
        create_post(alice, title="private", is_public="false")

        anonymous = client.get("/api/posts").json()
        mine = client.get("/api/posts", params={"author": alice["id"]}, headers=alice["headers"]).json()
        theirs = client.get(f"/api/posts/user/{alice['id']}", headers=bob["headers"]).json()

        assert [p["title"] for p in anonymous["posts"]] == ["public"]
        assert mine["pagination"]["total"] == 2
        assert theirs["pagination"]["total"] == 1

    def test_invalid_category_filter(self, client):
        response = client.get("/api/posts", params={"category": "gardening"})

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "category"

    def test_pagination_metadata(self, client, alice, create_post):
        for i in range(5):
            create_post(alice, title=f"post {i}")

        first = client.get("/api/posts", params={"limit": 2}).json()
        last = client.get("/api/posts", params={"limit": 2, "page": 3}).json()

        assert first["pagination"] == {"page": 1, "limit": 2, "total": 5, "pages": 3}
        assert len(last["posts"]) == 1

    def test_page_out_of_range(self, client, alice, create_post):
        create_post(alice)
        huge = str(10 ** 19)

        for url in ("/api/posts", "/api/users", f"/api/posts/user/{alice['id']}"):
            response = client.get(url, params={"page": huge, "limit": 100})

            assert response.status_code == 400, url
            assert response.json()["errors"][0]["field"] == "page"

        # The largest accepted page is just empty
        last = client.get("/api/posts", params={"page": 1_000_000, "limit": 100})
        assert last.status_code == 200
        assert last.json()["posts"] == []


class TestComments:

    def test_comment_routes(self, client, alice, bob, create_post):
        post = create_post(alice)

        created = client.post("/api/comments", json={"post_id": post["_id"], "content": "Nice"},
                              headers=bob["headers"])
        assert created.status_code == 201
        comment = created.json()["comment"]

        edited = client.put(f"/api/comments/{comment['_id']}", json={"content": "Very nice"},
                            headers=bob["headers"])
        assert edited.json()["comment"]["is_edited"] is True

        forbidden = client.put(f"/api/comments/{comment['_id']}", json={"content": "mine now"},
                               headers=alice["headers"])
        assert forbidden.status_code == 403

        liked = client.post(f"/api/comments/{comment['_id']}/like", headers=alice["headers"])
        assert liked.json() == {"message": "Comment liked successfully", "liked": True, "like_count": 1}

        listed = client.get(f"/api/comments/post/{post['_id']}").json()
        assert listed["comments"][0]["content"] == "Very nice"

    def test_reply_depth_limited(self, client, alice, bob, create_post):
        post = create_post(alice)
        url = f"/api/posts/{post['_id']}/comments"
        top = client.post(url, json={"content": "top"}, headers=bob["headers"]).json()["comment"]
        reply = client.post(url, json={"content": "reply", "parent_comment_id": top["_id"]},
                            headers=alice["headers"]).json()["comment"]

        response = client.post(url, json={"content": "deeper", "parent_comment_id": reply["_id"]},
                               headers=bob["headers"])

        assert response.status_code == 400

        replies = client.get(f"/api/comments/{top['_id']}/replies").json()
        assert [r["_id"] for r in replies["replies"]] == [reply["_id"]]

    def test_empty_comment_rejected(self, client, alice, create_post):
        post = create_post(alice)

        response = client.post(f"/api/posts/{post['_id']}/comments", json={"content": "   "},
                               headers=alice["headers"])

        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "content"

    def test_delete_comment_under_post(self, client, alice, bob, create_post):
        post = create_post(alice)
        url = f"/api/posts/{post['_id']}/comments"
        top = client.post(url, json={"content": "top"}, headers=bob["headers"]).json()["comment"]
        client.post(url, json={"content": "reply", "parent_comment_id": top["_id"]}, headers=alice["headers"])

        response = client.delete(f"{url}/{top['_id']}", headers=bob["headers"])

        assert response.status_code == 200
        assert client.get(url).json()["pagination"]["total"] == 0
        assert client.get(f"/api/posts/{post['_id']}").json()["post"]["comment_count"] == 0


class TestScenario:

    def test_two_students(self, client, alice, bob, create_post):
        # Bob follows Alice
        followed = client.post(f"/api/users/{alice['id']}/follow", headers=bob["headers"])
        assert followed.json() == {"message": "User followed successfully", "following": True}

        profile = client.get(f"/api/users/{alice['id']}", headers=bob["headers"]).json()
        assert profile["is_following"] is True
        assert [f["username"] for f in profile["user"]["followers"]] == ["bob"]

        # Alice shares notes, Bob likes and comments
        post = create_post(alice, title="Discrete maths notes")
        like = client.post(f"/api/posts/{post['_id']}/like", headers=bob["headers"]).json()
        assert like == {"message": "Post liked successfully", "liked": True, "like_count": 1}

        client.post(f"/api/posts/{post['_id']}/comments", json={"content": "Thanks!"}, headers=bob["headers"])

        seen_by_bob = client.get(f"/api/posts/{post['_id']}", headers=bob["headers"]).json()["post"]
        assert seen_by_bob["is_liked"] is True
        assert seen_by_bob["like_count"] == 1
        assert seen_by_bob["comments"][0]["author"]["username"] == "bob"

        seen_anonymously = client.get(f"/api/posts/{post['_id']}").json()["post"]
        assert seen_anonymously["is_liked"] is False

        liked = client.get("/api/posts/liked", headers=bob["headers"]).json()
        assert [p["_id"] for p in liked["posts"]] == [post["_id"]]

        # Bob changes his mind
        unliked = client.post(f"/api/posts/{post['_id']}/like", headers=bob["headers"]).json()
        assert unliked["liked"] is False and unliked["like_count"] == 0

        unfollowed = client.delete(f"/api/users/{alice['id']}/follow", headers=bob["headers"])
        assert unfollowed.json()["following"] is False
        assert client.get(f"/api/users/{alice['id']}/followers").json() == {"followers": []}


class TestServerError:

    def test_unexpected_error_is_500(self, mongo_db):
        client = TestClient(app, raise_server_exceptions=False)

        with patch("app.services.post_service.PostService.explore", side_effect=RuntimeError("boom")):
            response = client.get("/api/posts/explore")

        assert response.status_code == 500
        assert response.json() == {"message": "Server error"}
