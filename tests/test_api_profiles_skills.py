from __future__ import annotations


def test_profile_me_requires_known_user(client, make_profile, auth_headers) -> None:
    assert client.get("/api/profiles/me").status_code == 401
    assert client.get("/api/profiles/me", headers=auth_headers("no-such-profile")).status_code == 401

    user = make_profile("employer", email="boss@example.com", first_name="Grace", last_name="Hopper")
    r = client.get("/api/profiles/me", headers=auth_headers(user.id))
    assert r.status_code == 200
    assert r.json() == {
        "id": user.id,
        "email": "boss@example.com",
        "first_name": "Grace",
        "last_name": "Hopper",
        "role": "employer",
    }


def test_skill_catalogue_search_and_create(client, make_profile, make_skill, auth_headers) -> None:
    employer = make_profile("employer")
    employee = make_profile("employee")
    make_skill("PostgreSQL")
    make_skill("Python")

    r = client.get("/api/skills", params={"q": "post"}, headers=auth_headers(employee.id))
    assert [s["name"] for s in r.json()] == ["PostgreSQL"]

    r = client.post("/api/skills", json={"name": "  Terraform "}, headers=auth_headers(employer.id))
    assert r.status_code == 201
    assert r.json()["name"] == "Terraform"

    r = client.post("/api/skills", json={"name": "python"}, headers=auth_headers(employer.id))
    assert r.status_code == 409

    r = client.post("/api/skills", json={"name": "Go"}, headers=auth_headers(employee.id))
    assert r.status_code == 403


def test_employee_skills_are_replaced_as_a_set(client, make_profile, make_skill, auth_headers) -> None:
    employee = make_profile("employee")
    headers = auth_headers(employee.id)
    sql = make_skill("SQL")
    git = make_skill("Git")

    r = client.put(
        "/api/profiles/me/skills",
        json={"skills": [{"skill_id": sql.id, "proficiency": 2}, {"skill_id": git.id, "proficiency": 5}]},
        headers=headers,
    )
    assert r.status_code == 200
    assert [(s["name"], s["proficiency"]) for s in r.json()] == [("Git", 5), ("SQL", 2)]

    r = client.put("/api/profiles/me/skills", json={"skills": [{"skill_id": sql.id}]}, headers=headers)
    assert [(s["name"], s["proficiency"]) for s in r.json()] == [("SQL", 3)]
    assert client.get("/api/profiles/me/skills", headers=headers).json() == r.json()

    r = client.put("/api/profiles/me/skills", json={"skills": [{"skill_id": sql.id, "proficiency": 6}]}, headers=headers)
    assert r.status_code == 422

    r = client.put("/api/profiles/me/skills", json={"skills": [{"skill_id": "ghost"}]}, headers=headers)
    assert r.status_code == 400
