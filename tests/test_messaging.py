from formpilot.messaging import MessageChannel, Milestone


def test_subscribers_receive_milestones_in_order():
    channel = MessageChannel()
    seen = []
    channel.subscribe(lambda m, payload: seen.append((m, payload)))

    channel.emit(Milestone.FLOW_STARTED, page="contactInfo")
    channel.emit(Milestone.FLOW_STOPPED, page=None)

    assert seen == [(Milestone.FLOW_STARTED, {"page": "contactInfo"}),
                    (Milestone.FLOW_STOPPED, {"page": None})]


def test_a_failing_subscriber_does_not_stop_the_others():
    channel = MessageChannel()
    seen = []

    def broken(milestone, payload):
        raise RuntimeError("popup closed")

    channel.subscribe(broken)
    channel.subscribe(lambda m, payload: seen.append(m))

    channel.emit(Milestone.SUBMITTED, job={"title": "Analyst"})

    assert seen == [Milestone.SUBMITTED]
    assert channel.emitted(Milestone.SUBMITTED) == [{"job": {"title": "Analyst"}}]
