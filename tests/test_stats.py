from datetime import date, datetime

from conftest import bench_press, create_workout, easy_run
from fittrack import stats


def _log_week(client, headers):
    create_workout(client, headers, day="2025-03-01", exercises=[bench_press(), easy_run()])
    create_workout(client, headers, day="2025-03-02", exercises=[easy_run()])
    create_workout(
        client,
        headers,
        day="2025-03-04",
        exercises=[bench_press(name="Squat", weight=100, sets=5, reps=5)],
    )


def test_current_streak():
    days = [date(2025, 3, 3), date(2025, 3, 4), date(2025, 3, 4)]
    assert stats.current_streak(days, today=date(2025, 3, 4)) == 2
    # nothing logged yet today, streak still counts through yesterday
    assert stats.current_streak(days, today=date(2025, 3, 5)) == 2
    assert stats.current_streak(days, today=date(2025, 3, 6)) == 0
    assert stats.current_streak([], today=date(2025, 3, 6)) == 0


def test_current_streak_accepts_datetimes_and_strings():
    days = [datetime(2025, 3, 4, 18, 0), "2025-03-03T07:15:00", datetime(2025, 3, 4, 6, 0)]
    assert stats.current_streak(days, today=date(2025, 3, 4)) == 2


def test_longest_streak():
    days = [date(2025, 1, d) for d in (1, 2, 3, 5, 6, 9)]
    assert stats.longest_streak(days) == 3
    assert stats.longest_streak([date(2025, 1, 1)]) == 1
    assert stats.longest_streak([]) == 0


def test_summary_for_new_user_is_empty(client, alice):
    resp = client.get("/api/workouts/stats/summary", headers=alice["headers"])
    assert resp.status_code == 200
    assert resp.get_json() == stats.empty_summary()


def test_summary_aggregates(client, alice):
    _log_week(client, alice["headers"])

    body = client.get("/api/workouts/stats/summary", headers=alice["headers"]).get_json()
    assert body["total_workouts"] == 3
    assert body["total_exercises"] == 4
    assert body["total_duration"] == 100
    assert body["average_duration"] == 33
    assert body["total_calories"] == 600
    assert body["total_volume"] == 60 * 10 * 3 + 100 * 5 * 5
    assert body["total_distance"] == 10
    assert body["last_workout_date"].startswith("2025-03-04")
    assert body["longest_streak"] == 2

    assert body["intensity_stats"] == {
        "light": {"count": 2, "duration": 60},
        "vigorous": {"count": 2, "duration": 40},
    }
    assert body["equipment_stats"]["barbell"] == {"count": 2, "duration": 40}
    assert body["equipment_stats"]["none"] == {"count": 2, "duration": 60}

    cardio = body["category_stats"]["cardio"]
    assert cardio["count"] == 2
    assert cardio["total_duration"] == 60
    assert cardio["average_duration"] == 30
    assert cardio["total_calories"] == 600
    assert cardio["popular_exercises"] == ["Easy Run"]
    assert body["category_stats"]["resistance"]["popular_exercises"] == ["Bench Press", "Squat"]


def test_summary_recency_windows(app, client, alice):
    _log_week(client, alice["headers"])

    with app.app_context():
        summary = stats.workout_summary(alice["id"], now=datetime(2025, 3, 5, 12, 0))
        assert summary["weekly_workouts"] == 3
        assert summary["monthly_workouts"] == 3
        assert summary["current_streak"] == 1

        later = stats.workout_summary(alice["id"], now=datetime(2025, 3, 20))
        assert later["weekly_workouts"] == 0
        assert later["monthly_workouts"] == 3
        assert later["current_streak"] == 0


def test_summary_ignores_other_users(client, alice, bob):
    _log_week(client, alice["headers"])
    create_workout(client, bob["headers"], exercises=[easy_run(duration=45)])

    body = client.get("/api/workouts/stats/summary", headers=bob["headers"]).get_json()
    assert body["total_workouts"] == 1
    assert body["total_duration"] == 45


def test_popular_exercises(client, alice):
    _log_week(client, alice["headers"])

    rows = client.get(
        "/api/workouts/stats/popular-exercises", headers=alice["headers"]
    ).get_json()["exercises"]
    assert [r["name"] for r in rows] == ["Easy Run", "Bench Press", "Squat"]

    run = rows[0]
    assert run["count"] == 2
    assert run["category"] == "cardio"
    assert run["total_duration"] == 60
    assert run["average_duration"] == 30
    assert run["total_distance"] == 10
    assert run["total_calories"] == 600
    assert run["total_volume"] == 0
    assert run["average_intensity"] == "light"
    assert run["last_performed"].startswith("2025-03-02")

    assert rows[1]["total_volume"] == 1800
    assert rows[2]["average_intensity"] == "vigorous"


def test_popular_exercises_filters(client, alice):
    _log_week(client, alice["headers"])
    url = "/api/workouts/stats/popular-exercises"

    rows = client.get(f"{url}?category=cardio", headers=alice["headers"]).get_json()["exercises"]
    assert [r["name"] for r in rows] == ["Easy Run"]

    rows = client.get(f"{url}?type=free_weights", headers=alice["headers"]).get_json()["exercises"]
    assert [r["name"] for r in rows] == ["Bench Press", "Squat"]

    rows = client.get(f"{url}?limit=1", headers=alice["headers"]).get_json()["exercises"]
    assert len(rows) == 1

    assert client.get(f"{url}?category=space", headers=alice["headers"]).status_code == 400
    assert client.get(f"{url}?type=juggling", headers=alice["headers"]).status_code == 400


def test_categories(client, alice):
    _log_week(client, alice["headers"])

    body = client.get("/api/workouts/stats/categories", headers=alice["headers"]).get_json()
    assert set(body["categories"]) == {"cardio", "resistance"}
    resistance = body["categories"]["resistance"]
    assert resistance["count"] == 2
    assert resistance["total_duration"] == 40
    assert resistance["total_calories"] == 0
