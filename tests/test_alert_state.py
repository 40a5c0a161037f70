from proctor_ai.alert_state import AlertState


def test_not_evaluated_is_distinct_from_all_clear():
    state = AlertState()
    assert state.snapshot() == {"alerts": [], "evaluated": False, "all_clear": False}

    state.publish([])
    assert state.snapshot() == {"alerts": [], "evaluated": True, "all_clear": True}


def test_publish_replaces_previous_alerts():
    state = AlertState()
    state.publish(["No face detected"])
    state.publish(["Head turned away", "Too far / slouching"])

    assert state.alerts == ["Head turned away", "Too far / slouching"]
    assert not state.all_clear


def test_alerts_are_a_copy():
    state = AlertState()
    state.publish(["No face detected"])
    state.alerts.append("tampered")
    assert state.alerts == ["No face detected"]


def test_reset():
    state = AlertState()
    state.publish(["No face detected"])
    state.reset()
    assert state.alerts == []
    assert not state.has_evaluated_once
