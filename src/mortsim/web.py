import logging
from decimal import InvalidOperation

import orjson
from mashumaro.exceptions import InvalidFieldValue, MissingField
from starlette.applications import Starlette
from starlette.exceptions import HTTPException
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response
from starlette.routing import Route

from mortsim.amortization import ScheduleSummary, run
from mortsim.api.responses import ORJSONResponse, errors_response
from mortsim.config import Settings
from mortsim.impact import ImpactReport, compare, impact
from mortsim.schemas import (
    BalanceResponse,
    ComparisonResponse,
    ImpactResponse,
    MalformedRecordError,
    RunningTotalsResponse,
    SavedSimulation,
    SavingsResponse,
    ScheduleResponse,
    ScheduleRowResponse,
    SimulationRequest,
    SummaryResponse,
    normalize_simulation,
)
from mortsim.store import ScenarioNotFoundError, ScenarioStore, SimulationKind
from mortsim.validation import ValidationError, validate_inputs

logger = logging.getLogger(__name__)


def _summary_response(summary: ScheduleSummary) -> SummaryResponse:
    return SummaryResponse(
        monthly_payment=summary.monthly_payment,
        total_interest=summary.total_interest,
        total_extra_principal=summary.total_extra_principal,
        total_penalties=summary.total_penalties,
        total_service_charges=summary.total_service_charges,
        total_paid=summary.total_paid,
        actual_months=summary.actual_months,
    )


def _impact_response(report: ImpactReport, name: str | None = None) -> ImpactResponse:
    return ImpactResponse(
        with_extras=_summary_response(report.with_extras),
        baseline=_summary_response(report.baseline),
        savings=SavingsResponse(
            interest=report.savings.interest,
            months=report.savings.months,
            total_paid=report.savings.total_paid,
        ),
        name=name,
    )


def _kind(request: Request) -> SimulationKind:
    try:
        return SimulationKind(request.path_params["kind"])
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


async def _simulation_request(request: Request) -> SimulationRequest:
    try:
        body = await request.body()
        return SimulationRequest.from_json(body)
    except (InvalidFieldValue, MissingField, ValueError, TypeError, AttributeError, InvalidOperation) as exc:
        logger.warning("Rejected simulation request: %s", exc)
        raise HTTPException(status_code=400, detail=str(exc)) from exc


async def health(_: Request) -> PlainTextResponse:
    return PlainTextResponse("ok")


async def create_schedule(request: Request) -> Response:
    req = await _simulation_request(request)
    try:
        rows, summary = run(
            req.mortgage.to_loan(),
            req.amortization.to_extra_payments(),
            req.mortgage.to_service_charges(),
        )
    except ValidationError as exc:
        return errors_response(exc.errors)

    resp_data = ScheduleResponse(
        rows=[
            ScheduleRowResponse(
                period=row.period,
                date=row.payment_date,
                month_name=row.month.name,
                scheduled_payment=row.scheduled_payment,
                interest=row.interest,
                principal=row.principal,
                extra_one_off=row.extra_one_off,
                extra_periodic=row.extra_periodic,
                one_off_penalty=row.one_off_penalty,
                periodic_penalty=row.periodic_penalty,
                service_charges=row.service_charges,
                total_paid=row.total_paid,
                balance=BalanceResponse(before=row.balance.before, after=row.balance.after),
                totals=RunningTotalsResponse(
                    interest=row.totals.interest,
                    extra_principal=row.totals.extra_principal,
                    penalties=row.totals.penalties,
                    service_charges=row.totals.service_charges,
                    paid=row.totals.paid,
                ),
            )
            for row in rows
        ],
        summary=_summary_response(summary),
    )
    return Response(content=resp_data.to_json(), media_type="application/json")


async def create_impact(request: Request) -> Response:
    req = await _simulation_request(request)
    try:
        report = impact(
            req.mortgage.to_loan(),
            req.mortgage.to_service_charges(),
            req.amortization.to_extra_payments(),
        )
    except ValidationError as exc:
        return errors_response(exc.errors)
    return Response(content=_impact_response(report).to_json(), media_type="application/json")


async def list_simulations(request: Request) -> Response:
    store: ScenarioStore = request.app.state.store
    return ORJSONResponse({"names": store.names(_kind(request))})


async def get_simulation(request: Request) -> Response:
    store: ScenarioStore = request.app.state.store
    try:
        simulation = store.get(_kind(request), request.path_params["name"])
    except ScenarioNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return Response(content=simulation.to_json(), media_type="application/json")


def _validate_saved(kind: SimulationKind, simulation: SavedSimulation) -> list[str]:
    if kind is SimulationKind.Mortgage:
        if simulation.mortgage is None:
            return ["Mortgage simulation is required"]
        return validate_inputs(simulation.mortgage.to_loan(), service_charges=simulation.mortgage.to_service_charges())
    if simulation.amortization is None:
        return ["Amortization simulation is required"]
    return simulation.amortization.to_extra_payments().validate()


async def save_simulation(request: Request) -> Response:
    store: ScenarioStore = request.app.state.store
    kind = _kind(request)
    name = request.path_params["name"].strip()
    if not name:
        return errors_response(["Please enter a simulation name"])
    try:
        raw = orjson.loads(await request.body())
        if not isinstance(raw, dict):
            raise MalformedRecordError("Expected a JSON object")
        simulation = normalize_simulation({**raw, "name": name})
    except (orjson.JSONDecodeError, MalformedRecordError) as exc:
        logger.warning("Rejected %s simulation %r: %s", kind, name, exc)
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    if errors := _validate_saved(kind, simulation):
        return errors_response(errors)
    replaced = store.save(kind, simulation)
    return ORJSONResponse({"name": name, "replaced": replaced}, status_code=200 if replaced else 201)


async def delete_simulation(request: Request) -> Response:
    store: ScenarioStore = request.app.state.store
    try:
        store.delete(_kind(request), request.path_params["name"])
    except ScenarioNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return Response(status_code=204)


async def comparison(request: Request) -> Response:
    store: ScenarioStore = request.app.state.store
    name = request.path_params["name"]
    try:
        plan = store.get(SimulationKind.Amortization, name)
    except ScenarioNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    if plan.amortization is None:
        return errors_response(["Amortization simulation is required"])

    mortgages = {
        saved.name: (saved.mortgage.to_loan(), saved.mortgage.to_service_charges())
        for saved in store.all(SimulationKind.Mortgage)
        if saved.mortgage is not None
    }
    try:
        rows = compare(mortgages, plan.amortization.to_extra_payments())
    except ValidationError as exc:
        return errors_response(exc.errors)

    resp_data = ComparisonResponse(
        amortization=plan.name,
        mortgages=[_impact_response(row.report, name=row.name) for row in rows],
    )
    return Response(content=resp_data.to_json(), media_type="application/json")


routes = [
    Route("/health", health, methods=["GET"]),
    Route("/api/schedule", create_schedule, methods=["POST"]),
    Route("/api/impact", create_impact, methods=["POST"]),
    Route("/api/simulations/{kind}", list_simulations, methods=["GET"]),
    Route("/api/simulations/{kind}/{name}", get_simulation, methods=["GET"]),
    Route("/api/simulations/{kind}/{name}", save_simulation, methods=["PUT"]),
    Route("/api/simulations/{kind}/{name}", delete_simulation, methods=["DELETE"]),
    Route("/api/comparison/{name}", comparison, methods=["GET"]),
]


def create_app(store: ScenarioStore | None = None) -> Starlette:
    app = Starlette(debug=False, routes=routes)
    app.state.store = store if store is not None else ScenarioStore(Settings.from_env().store_path)
    return app


app = create_app()
