"""Full-flow integration test — three users, one small room.

Learn: This walks the whole surface through HTTP only, proving the pieces
connect: register → login → create room → join → capacity limit →
permissions → leave → delete. The gateway runs for real on every call.
"""

import pytest


@pytest.mark.asyncio
async def test_three_users_share_a_room(client, register, password):
    alice, alice_user = await register("alice")
    bob, bob_user = await register("bob")
    carol, _ = await register("carol")

    # Logging in issues a fresh token that works just like the first one
    r = await client.post(
        "/api/auth/login", json={"email": "alice@example.com", "password": password}
    )
    assert r.status_code == 200
    alice = {"Authorization": f"Bearer {r.json()['token']}"}

    # Alice opens a room for two
    r = await client.post(
        "/api/rooms", json={"name": "pair-room", "max_members": 2}, headers=alice
    )
    assert r.status_code == 201
    room_id = r.json()["id"]

    # Bob joins, Carol is turned away
    r = await client.post(f"/api/rooms/{room_id}/join", headers=bob)
    assert r.status_code == 201

    r = await client.post(f"/api/rooms/{room_id}/join", headers=carol)
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "ROOM_FULL"

    # Bob can see the room but not edit or delete it
    r = await client.get(f"/api/rooms/{room_id}", headers=bob)
    assert r.status_code == 200
    assert r.json()["user_role"] == "member"
    assert {m["user_id"] for m in r.json()["members"]} == {alice_user["id"], bob_user["id"]}

    r = await client.put(f"/api/rooms/{room_id}", json={"description": "mine"}, headers=bob)
    assert r.status_code == 403

    r = await client.delete(f"/api/rooms/{room_id}", headers=bob)
    assert r.status_code == 403
    assert r.json()["error"]["code"] == "ROOM_OWNER_REQUIRED"

    # Bob leaves, which frees a seat for Carol
    r = await client.post(f"/api/rooms/{room_id}/leave", headers=bob)
    assert r.status_code == 204

    r = await client.post(f"/api/rooms/{room_id}/join", headers=carol)
    assert r.status_code == 201

    # Alice deletes the room; it's gone for everyone
    r = await client.delete(f"/api/rooms/{room_id}", headers=alice)
    assert r.status_code == 204

    r = await client.get(f"/api/rooms/{room_id}", headers=carol)
    assert r.status_code == 404
    assert r.json()["error"]["code"] == "ROOM_NOT_FOUND"

    # Logging out marks Alice offline
    r = await client.post("/api/auth/logout", headers=alice)
    assert r.status_code == 200
    r = await client.get("/api/auth/me", headers=alice)
    assert r.json()["status"] == "offline"
