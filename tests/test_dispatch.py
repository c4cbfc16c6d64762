import typing

from finengine.dispatch import DEFAULT_HANDLERS, Dispatcher, Handler, build_dispatcher
from finengine.domain import CalculationType, InvalidPayload, Request, Response, UnknownCalculationType
from finengine.functional import Left, Right, attempt, pipe


def test_unknown_type_yields_error_response():
    response = build_dispatcher().handle({"id": 7, "type": "BOGUS", "data": []})
    assert response["id"] == 7
    assert response["type"] == "BOGUS"
    assert response["result"] is None
    assert "BOGUS" in response["error"]
    assert response["error"] == "Unknown calculation type: BOGUS"


def test_every_operation_is_registered():
    dispatcher = build_dispatcher()
    assert len(DEFAULT_HANDLERS) == 8
    for calc_type in CalculationType:
        assert dispatcher.handles(calc_type)
        assert dispatcher.handles(calc_type.value)


def test_success_envelope():
    response = build_dispatcher().handle({
        "id": "req-1",
        "type": "CALCULATE_TOTALS",
        "data": [{"amount": 100}, {"amount": -40}, {"amount": -10}],
    })
    assert response == {
        "id": "req-1",
        "type": "CALCULATE_TOTALS",
        "result": {"income": 100, "expenses": 50, "net": 50},
        "error": None,
    }


def test_handler_exception_becomes_error_response():
    response = build_dispatcher().handle({"id": 1, "type": "CALCULATE_TOTALS", "data": {"not": "a list"}})
    assert response["result"] is None
    assert response["error"] == "transactions must be a list, got dict"


def test_unexpected_exception_is_contained():
    dispatcher = Dispatcher()

    def explode(data):
        return data["missing"]

    dispatcher.register("EXPLODE", explode)
    response = dispatcher.handle({"id": 2, "type": "EXPLODE", "data": {}})
    assert response["result"] is None
    assert response["error"] == "'missing'"


def test_exception_without_message_is_named():
    def fail(data):
        raise RuntimeError()

    dispatcher = Dispatcher({"FAIL": fail})
    response = dispatcher.handle({"id": 3, "type": "FAIL", "data": None})
    assert response["error"] == "RuntimeError"


def test_malformed_message():
    response = build_dispatcher().handle(["CALCULATE_TOTALS"])
    assert response["id"] is None
    assert response["result"] is None
    assert "expected an object" in response["error"]


def test_unhashable_type_is_unknown():
    response = build_dispatcher().handle({"id": 4, "type": ["x"], "data": []})
    assert response["error"].startswith("Unknown calculation type")


def test_register_and_unregister():
    dispatcher = build_dispatcher()
    dispatcher.register("ECHO", lambda data: data)
    assert dispatcher.handle({"id": 5, "type": "ECHO", "data": {"x": 1}})["result"] == {"x": 1}

    dispatcher.unregister(CalculationType.CALCULATE_TOTALS)
    assert not dispatcher.handles("CALCULATE_TOTALS")
    # other dispatchers keep their own table
    assert build_dispatcher().handles("CALCULATE_TOTALS")


def test_run_returns_either():
    dispatcher = build_dispatcher()
    assert dispatcher.run("CALCULATE_TOTALS", []) == Right({"income": 0, "expenses": 0, "net": 0})
    assert not dispatcher.run("BOGUS", []).is_right()


def test_lookup_chains_into_run():
    dispatcher = build_dispatcher()
    assert dispatcher.lookup("CALCULATE_TOTALS") == Right(DEFAULT_HANDLERS["CALCULATE_TOTALS"])

    missing = dispatcher.lookup("BOGUS")
    assert isinstance(missing.get_error(), UnknownCalculationType)
    # a failed lookup never reaches a handler
    called = []
    assert missing.bind(lambda handler: called.append(handler)) is missing
    assert called == []

    outcome = dispatcher.run("SORT_LARGE_DATASET", {"items": []})
    assert isinstance(outcome.get_error(), InvalidPayload)


def test_dispatch_with_envelope_objects():
    request = Request(id=9, type="AGGREGATE_BY_CATEGORY", data=[{"category": "food", "amount": 30}])
    response = build_dispatcher().dispatch(request)
    assert isinstance(response, Response)
    assert response.ok
    assert response.result[0]["income"] == 30


def test_attempt_and_left():
    failure = attempt(int, "x")
    assert isinstance(failure, Left)
    assert isinstance(failure.get_error(), ValueError)
    assert failure.bind(lambda v: Right(v + 1)) is failure
    assert failure.get_or_else(0) == 0
    assert attempt(int, "5").bind(lambda v: attempt(int, v + 1)) == Right(6)


def test_pipe():
    assert pipe(2, lambda x: x + 1, lambda x: x * 10) == 30


def test_handlers_argument_is_optional():
    hints = typing.get_type_hints(Dispatcher.__init__)
    assert hints["handlers"] == typing.Optional[typing.Mapping[str, Handler]]
    assert not Dispatcher().handles("CALCULATE_TOTALS")
