from __future__ import annotations

from skillgap.errors import UpstreamUnavailableError
from skillgap.schemas.affiliate import CourseCandidate
from skillgap.services.affiliate_service import tracking_id


PYTHON_COURSES = [
    CourseCandidate(title="Python for Everybody", provider="Coursera", url="https://www.coursera.org/learn/python", price=0, rating=4.8, review_count=9000, estimated_hours=18),
    CourseCandidate(title="100 Days of Code", provider="Udemy", url="https://www.udemy.com/course/100-days-of-code/", price=19.99, rating=4.7, review_count=250000, estimated_hours=60),
]
STATS_COURSES = [
    CourseCandidate(title="Statistics with Python", provider="Coursera", url="https://www.coursera.org/learn/stats", price=49, rating=4.5, review_count=3000, estimated_hours=40),
]


def _analysis(client) -> int:
    resume = client.post(
        "/api/resumes",
        json={"user_id": "u1", "title": "CV", "content": "Analyst", "skills": [{"name": "SQL", "level": "advanced"}]},
    ).json()
    response = client.post(
        "/api/skill-gap/analyze",
        json={
            "user_id": "u1",
            "resume_id": resume["id"],
            "target_role": "Data Scientist",
            "user_availability": 10,
            "target_skills": [
                {"skill_name": "Python", "importance": 90, "level": 5, "category": "Technical Skills"},
                {"skill_name": "Statistics", "importance": 75, "level": 4},
            ],
        },
    )
    return response.json()["analysis_id"]


def _click(client, analysis_id: int):
    return client.post(
        "/api/recommendations/track-click",
        json={
            "analysis_id": analysis_id,
            "skill_name": "Python",
            "course_provider": "Coursera",
            "course_url": "https://www.coursera.org/learn/python",
            "tracking_id": tracking_id("skillgap", "u1", analysis_id, "Python"),
        },
    )


def test_course_recommendations_are_tagged_and_ordered(client, collaborators):
    collaborators["course_catalog"].courses = {"Python": PYTHON_COURSES, "Statistics": STATS_COURSES}
    analysis_id = _analysis(client)

    response = client.post(
        "/api/recommendations/courses",
        json={"analysis_id": analysis_id, "user_id": "u1", "preferences": {"top_n": 1}},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["disclosure"].startswith("We may earn a commission")
    assert body["warnings"] == []
    assert [item["skill_name"] for item in body["recommendations"]] == ["Python", "Statistics"]

    course = body["recommendations"][0]["courses"][0]
    assert course["title"] == "Python for Everybody"
    assert course["tracking_id"] == tracking_id("skillgap", "u1", analysis_id, "Python")
    assert "utm_campaign=" in course["affiliate_url"]


def test_recommendations_for_another_user_are_hidden(client):
    analysis_id = _analysis(client)
    response = client.post("/api/recommendations/courses", json={"analysis_id": analysis_id, "user_id": "intruder"})
    assert response.status_code == 404
    assert client.post("/api/recommendations/courses", json={"analysis_id": 999, "user_id": "u1"}).status_code == 404


def test_partner_outage_degrades_to_warning(client, collaborators):
    collaborators["course_catalog"].error = UpstreamUnavailableError("partner down", status_code=503)
    analysis_id = _analysis(client)

    body = client.post("/api/recommendations/courses", json={"analysis_id": analysis_id, "user_id": "u1"}).json()
    assert all(item["courses"] == [] for item in body["recommendations"])
    assert [warning["title"] for warning in body["warnings"]] == ["Course recommendations unavailable"]

    report = client.get("/api/analytics/revenue").json()
    assert report["metrics"]["analyses_shown"] == 0


def test_clicks_and_conversions_update_metrics(client, collaborators):
    collaborators["course_catalog"].courses = {"Python": PYTHON_COURSES}
    analysis_id = _analysis(client)
    client.post("/api/recommendations/courses", json={"analysis_id": analysis_id, "user_id": "u1"})

    assert _click(client, analysis_id).json()["click_count"] == 1
    assert _click(client, analysis_id).json()["click_count"] == 2

    conversion = client.post(
        "/api/analytics/conversion",
        json={
            "analysis_id": analysis_id,
            "skill_name": "Python",
            "course_provider": "Coursera",
            "course_url": "https://www.coursera.org/learn/python",
            "conversion_type": "enrollment",
            "revenue": 20,
        },
    ).json()
    assert conversion["conversion_count"] == 1
    assert conversion["total_revenue"] == 20
    assert conversion["metrics"]["analyses_shown"] == 1
    assert conversion["metrics"]["conversion_rate"] == 0.5

    stored = client.get(f"/api/skill-gap/{analysis_id}").json()["metadata"]
    assert stored["affiliate_click_count"] == 2
    assert stored["affiliate_conversions"] == 1
    assert stored["last_click_at"] is not None

    report = client.get("/api/analytics/revenue", params={"days": 30}).json()
    assert report["metrics"]["total_clicks"] == 2
    assert report["metrics"]["click_through_rate"] == 2.0
    assert report["validation"]["overall_status"] == "exceeds"
    assert report["validation"]["meets_all_targets"] is True

    performance = client.get("/health/performance").json()["metrics"]
    assert performance["affiliate_ctr"] == 2.0


def test_click_on_unknown_analysis_is_404(client):
    assert _click(client, 12345).status_code == 404


def test_health_endpoints(client):
    assert client.get("/health/").json()["status"] == "ok"
    db_health = client.get("/health/db").json()
    assert db_health["orm"] == "ok"
    assert db_health["orm_db_url"].startswith("sqlite")

    resume = client.post("/api/resumes", json={"user_id": "u9", "title": "CV", "content": "Cook"}).json()
    client.post(
        "/api/skill-gap/analyze",
        json={"user_id": "u9", "resume_id": resume["id"], "target_role": "Baker", "user_availability": 5,
              "target_skills": [{"skill_name": "Baking"}]},
    )
    metrics = client.get("/health/performance").json()["metrics"]
    assert metrics["initial_analysis"]["count"] == 1
    assert metrics["storage_query"]["count"] == 1
    assert metrics["ai_cache"]["misses"] == 1
