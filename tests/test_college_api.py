def create_class(client, payload):
    response = client.post("/api/college/classes", json=payload)
    assert response.status_code == 201
    return response.get_json()


def enable_notifications(client, auth_headers, **flags):
    settings = {
        "enabled": True,
        "phone_number": "+15557654321",
        "notify_before_class": True,
        "notify_missed_class": True,
        "reminder_time": 30,
    }
    settings.update(flags)
    response = client.patch("/api/notification-settings", json=settings, headers=auth_headers)
    assert response.status_code == 200


def test_class_crud(client, class_payload):
    college_class = create_class(client, class_payload)
    assert client.get("/api/college/classes").get_json()[0]["course_code"] == "MATH201"

    response = client.patch(f"/api/college/classes/{college_class['id']}", json={"location": "Online"})
    assert response.get_json()["location"] == "Online"

    assert client.delete(f"/api/college/classes/{college_class['id']}").status_code == 204
    assert client.get(f"/api/college/classes/{college_class['id']}").status_code == 404


def test_class_times_must_be_ordered(client, class_payload):
    response = client.post("/api/college/classes", json=dict(class_payload, end_time="10:00"))
    assert response.status_code == 400

    college_class = create_class(client, class_payload)
    response = client.patch(f"/api/college/classes/{college_class['id']}", json={"start_time": "13:00"})
    assert response.status_code == 400


def test_class_rejects_bad_day(client, class_payload):
    response = client.post("/api/college/classes", json=dict(class_payload, day_of_week="funday"))
    assert response.status_code == 400


def test_attendance_upsert_and_stats(client, class_payload):
    college_class = create_class(client, class_payload)
    class_id = college_class["id"]
    first = client.post("/api/college/attendance", json={"class_id": class_id, "date": "2024-03-05", "attended": False})
    assert first.status_code == 201
    again = client.post("/api/college/attendance", json={"class_id": class_id, "date": "2024-03-05T11:05:00", "attended": True, "notes": "late"})
    assert again.get_json()["id"] == first.get_json()["id"]
    client.post("/api/college/attendance", json={"class_id": class_id, "date": "2024-03-12", "attended": False})
    client.post("/api/college/attendance", json={"class_id": class_id, "date": "2024-03-19", "attended": True})

    records = client.get(f"/api/college/attendance?class_id={class_id}").get_json()
    assert len(records) == 3

    stats = client.get("/api/college/attendance/stats").get_json()
    assert stats == {"attended": 2, "skipped": 1, "total": 3, "attendance_rate": 67}

    class_stats = client.get(f"/api/college/classes/{class_id}/stats").get_json()
    assert class_stats["class_id"] == class_id
    assert class_stats["attendance_rate"] == 67
    assert class_stats["longest_streak"] == 1


def test_attendance_for_unknown_class(client):
    response = client.post("/api/college/attendance", json={"class_id": 3, "date": "2024-03-05", "attended": True})
    assert response.status_code == 404
    assert response.get_json()["message"] == "College class not found"


def test_attendance_patch(client, class_payload):
    college_class = create_class(client, class_payload)
    record = client.post("/api/college/attendance", json={"class_id": college_class["id"], "date": "2024-03-05", "attended": False}).get_json()
    response = client.patch(f"/api/college/attendance/{record['id']}", json={"notes": "sick"})
    assert response.get_json()["notes"] == "sick"
    assert client.patch("/api/college/attendance/77", json={"notes": "x"}).status_code == 404


def test_class_stats_unknown_class(client):
    assert client.get("/api/college/classes/5/stats").status_code == 404


def test_remind_sends_whatsapp(client, auth_headers, class_payload, twilio_client):
    college_class = create_class(client, class_payload)
    enable_notifications(client, auth_headers)

    response = client.post(f"/api/college/classes/{college_class['id']}/remind", headers=auth_headers)
    assert response.status_code == 200
    assert response.get_json()["success"] is True

    kwargs = twilio_client.messages.create.call_args.kwargs
    assert kwargs["to"] == "whatsapp:+15557654321"
    assert kwargs["from_"] == "whatsapp:+15550001111"
    assert "Calculus I" in kwargs["body"]
    assert "Building B, Room 203" in kwargs["body"]


def test_missed_alert_respects_settings(client, auth_headers, class_payload, twilio_client):
    college_class = create_class(client, class_payload)
    enable_notifications(client, auth_headers, notify_missed_class=False)

    response = client.post(f"/api/college/classes/{college_class['id']}/missed-alert", headers=auth_headers)
    assert response.status_code == 400
    assert response.get_json()["success"] is False
    twilio_client.messages.create.assert_not_called()


def test_missed_alert_reports_send_failure(client, auth_headers, class_payload, twilio_client):
    college_class = create_class(client, class_payload)
    enable_notifications(client, auth_headers)
    twilio_client.messages.create.side_effect = RuntimeError("twilio down")

    response = client.post(f"/api/college/classes/{college_class['id']}/missed-alert", headers=auth_headers)
    assert response.status_code == 400
    assert response.get_json() == {"success": False, "message": "Failed to send missed class alert"}


def test_remind_requires_auth_and_known_class(client, auth_headers):
    assert client.post("/api/college/classes/1/remind").status_code == 401
    assert client.post("/api/college/classes/1/remind", headers=auth_headers).status_code == 404


def test_attendance_rejects_bad_class_id(client):
    response = client.get("/api/college/attendance?class_id=abc")
    assert response.status_code == 400
    assert response.get_json() == {"message": "Invalid class ID"}
