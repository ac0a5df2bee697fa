from clinical_advisor.assessment import GENERIC_FAILURE_NOTICE, NARRATIVE_EMPTY_MESSAGE, NARRATIVE_ERROR_MESSAGE
from clinical_advisor.errors import ModelRequestError
from clinical_advisor.history import list_history


def test_health(client):
    assert client.get("/health").json()["ok"] is True


def test_frontend_served(client):
    response = client.get("/")
    assert response.status_code == 200
    assert "Health Advisor" in response.text


def test_unknown_session(client):
    assert client.get("/api/sessions/nope").status_code == 404


def test_field_updates(client, new_session):
    sid = new_session()
    client.patch(f"/api/sessions/{sid}/profile", json={"field": "full_name", "value": "Jane"})
    state = client.patch(f"/api/sessions/{sid}/profile", json={"field": "age", "value": "34"}).json()
    assert state["profile"]["full_name"] == "Jane"
    assert state["profile"]["age"] == "34"
    assert "heart_rate" not in state["profile"]

    response = client.patch(f"/api/sessions/{sid}/profile", json={"field": "heart_rate", "value": "80"})
    assert response.status_code == 422


def test_vitals_recomputed_on_change(client, new_session):
    sid = new_session("narrative")
    state = client.patch(f"/api/sessions/{sid}/profile", json={"field": "heart_rate", "value": "45"}).json()
    assert state["vitals"] == [
        {"key": "heart_rate", "label": "Heart Rate", "value": "45", "unit": "bpm", "status": "danger"}
    ]
    state = client.patch(f"/api/sessions/{sid}/profile", json={"field": "heart_rate", "value": "65"}).json()
    assert state["vitals"][0]["status"] == "normal"


def test_incomplete_submission_never_calls_model(client, new_session, fake_gemini):
    for mode in ("structured", "narrative"):
        sid = new_session(mode)
        client.patch(f"/api/sessions/{sid}/profile", json={"field": "age", "value": "40"})
        response = client.post(f"/api/sessions/{sid}/assessment")
        assert response.status_code == 422
        assert "Please enter patient information" in response.json()["detail"]
    assert fake_gemini.calls == []


def test_structured_assessment(client, new_session, fake_gemini, assessment_json):
    fake_gemini.replies.append(f"```json\n{assessment_json}\n```")
    sid = new_session()
    client.put(f"/api/sessions/{sid}/symptoms", json={"symptoms": "sore throat"})

    response = client.post(f"/api/sessions/{sid}/assessment")
    assert response.status_code == 200
    state = response.json()
    assert state["busy"] is False
    assert state["assessment"]["triage_status"] == "MONITOR"
    assert state["assessment"]["conditions"][1]["badge"] == "badge-moderate"

    call = fake_gemini.calls[0]
    assert call["response_schema"] is not None
    assert "- Symptoms: sore throat" in call["prompt"]
    assert "- Name: Anonymous" in call["prompt"]


def test_structured_failure_clears_result(client, new_session, fake_gemini, assessment_json):
    fake_gemini.replies.extend([assessment_json, ModelRequestError("boom"), "not json at all"])
    sid = new_session()
    client.patch(f"/api/sessions/{sid}/profile", json={"field": "full_name", "value": "Jane"})
    assert client.post(f"/api/sessions/{sid}/assessment").status_code == 200

    for _ in range(2):
        response = client.post(f"/api/sessions/{sid}/assessment")
        assert response.status_code == 502
        assert response.json()["detail"] == GENERIC_FAILURE_NOTICE
        state = client.get(f"/api/sessions/{sid}").json()
        assert state["busy"] is False
        assert state["assessment"] is None


def test_narrative_report(client, new_session, fake_gemini):
    fake_gemini.replies.append("## Impression\nPatient is **stable**.")
    sid = new_session("narrative")
    client.patch(f"/api/sessions/{sid}/profile", json={"field": "heart_rate", "value": "72"})

    state = client.post(f"/api/sessions/{sid}/assessment").json()
    assert state["report"]["markdown"] == "## Impression\nPatient is **stable**."
    assert state["report"]["html"] == "<h2>Impression</h2>\n<p>Patient is <strong>stable</strong>.</p>"
    assert fake_gemini.calls[0]["response_schema"] is None


def test_narrative_failure_replaces_report(client, new_session, fake_gemini):
    fake_gemini.replies.extend(["## Old report", RuntimeError("network down"), ""])
    sid = new_session("narrative")
    client.put(f"/api/sessions/{sid}/symptoms", json={"symptoms": "dizzy"})
    client.post(f"/api/sessions/{sid}/assessment")

    response = client.post(f"/api/sessions/{sid}/assessment")
    assert response.status_code == 200
    state = response.json()
    assert state["busy"] is False
    assert state["report"]["markdown"] == NARRATIVE_ERROR_MESSAGE

    state = client.post(f"/api/sessions/{sid}/assessment").json()
    assert state["report"]["markdown"] == NARRATIVE_EMPTY_MESSAGE


def test_busy_session_rejects_second_submission(client, new_session, fake_gemini):
    sid = new_session()
    client.patch(f"/api/sessions/{sid}/profile", json={"field": "full_name", "value": "Jane"})
    client.app.state.sessions.get(sid).busy = True

    assert client.post(f"/api/sessions/{sid}/assessment").status_code == 409
    assert fake_gemini.calls == []


def test_reset_requires_confirmation(client, new_session, fake_gemini, assessment_json):
    fake_gemini.replies.append(assessment_json)
    sid = new_session()
    client.patch(f"/api/sessions/{sid}/profile", json={"field": "full_name", "value": "Jane"})
    client.put(f"/api/sessions/{sid}/symptoms", json={"symptoms": "cough"})
    client.post(f"/api/sessions/{sid}/assessment")

    body = client.post(f"/api/sessions/{sid}/reset", json={"confirm": False}).json()
    assert body["reset"] is False
    assert body["state"]["profile"]["full_name"] == "Jane"
    assert body["state"]["assessment"] is not None
    assert len(client.get(f"/api/sessions/{sid}/history").json()) == 1

    body = client.post(f"/api/sessions/{sid}/reset", json={"confirm": True}).json()
    assert body["reset"] is True
    assert set(body["state"]["profile"].values()) == {""}
    assert body["state"]["symptoms"] == ""
    assert body["state"]["assessment"] is None
    assert client.get(f"/api/sessions/{sid}/history").json() == []


def test_history_is_scoped_to_session(client, new_session, fake_gemini, assessment_json):
    fake_gemini.replies.extend([assessment_json, ModelRequestError("boom")])
    first, second = new_session(), new_session()
    for sid in (first, second):
        client.patch(f"/api/sessions/{sid}/profile", json={"field": "full_name", "value": "Jane"})
        client.post(f"/api/sessions/{sid}/assessment")

    first_history = client.get(f"/api/sessions/{first}/history").json()
    second_history = client.get(f"/api/sessions/{second}/history").json()
    assert [h["outcome"] for h in first_history] == ["ok"]
    assert first_history[0]["result"]["triageStatus"] == "MONITOR"
    assert [h["outcome"] for h in second_history] == ["failed"]

    client.delete(f"/api/sessions/{first}/history")
    assert client.get(f"/api/sessions/{first}/history").json() == []
    assert len(client.get(f"/api/sessions/{second}/history").json()) == 1


def test_discard_session(client, new_session):
    sid = new_session()
    assert client.delete(f"/api/sessions/{sid}").status_code == 204
    assert client.get(f"/api/sessions/{sid}").status_code == 404


def test_discard_refused_while_request_in_flight(client, new_session):
    sid = new_session()
    client.app.state.sessions.get(sid).busy = True
    assert client.delete(f"/api/sessions/{sid}").status_code == 409
    assert client.get(f"/api/sessions/{sid}").status_code == 200


def test_idle_sessions_evicted_with_their_history(client, new_session, fake_gemini, assessment_json):
    fake_gemini.replies.append(assessment_json)
    old = new_session()
    client.patch(f"/api/sessions/{old}/profile", json={"field": "full_name", "value": "Jane"})
    client.post(f"/api/sessions/{old}/assessment")

    store = client.app.state.sessions
    store.idle_timeout = -1
    new_session()
    assert client.get(f"/api/sessions/{old}").status_code == 404
    assert list_history(client.app.state.engine, old) == []


def test_session_state_fields(client, new_session):
    state = client.get(f"/api/sessions/{new_session()}").json()
    assert set(state) == {
        "session_id", "mode", "profile", "symptoms", "busy", "assessment", "report", "vitals",
    }


def test_page_flushes_form_and_drops_old_session(client):
    script = client.get("/static/app.js").text
    submit = script[script.index('$("#form").addEventListener'):]
    assert submit.index("await flushForm()") < submit.index("/assessment`")
    assert 'api("DELETE", `/api/sessions/${sessionId}`)' in script
    assert '"pagehide"' in script
