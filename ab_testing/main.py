import logging
import random
from typing import Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Path, Query, Request
import uvicorn
from starlette import status

from ab_testing.core.cookies import CookieStorage, get_cookie_storage
from ab_testing.core.settings import Settings, config_settings
from ab_testing.models.schemas.assignment import AssignmentModel
from ab_testing.models.schemas.event import EventModel
from ab_testing.models.schemas.experiment import (
    DebugOverridesModel,
    ExperimentConfig,
    ExperimentSummaryModel,
    ForceVariantModel,
    VariantResponseModel,
    VariantSummaryModel,
)
from ab_testing.repositories.assignment_repo import AssignmentRepository
from ab_testing.repositories.event_repo import EventRepository
from ab_testing.repositories.experiment_repo import DEFAULT_EXPERIMENTS, ExperimentRepository
from ab_testing.services.debug_override import DebugOverrideResolver
from ab_testing.services.event_service import EventService
from ab_testing.services.experiment_service import ExperimentService
from ab_testing.services.variant_selector import VariantSelector

logger = logging.getLogger(__name__)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_event_service(request: Request) -> EventService:
    return EventService(request.app.state.event_repo)


def get_experiment_service(
    request: Request,
    storage: CookieStorage = Depends(get_cookie_storage),
    settings: Settings = Depends(get_settings),
    event_service: EventService = Depends(get_event_service),
) -> ExperimentService:
    """Builds the assignment engine around the current request's cookies and query string."""
    return ExperimentService(
        experiment_repo=request.app.state.experiment_repo,
        assignment_repo=AssignmentRepository.from_settings(storage, settings),
        override_resolver=DebugOverrideResolver(request.query_params, settings.debug_param),
        selector=VariantSelector(request.app.state.rng),
        track_experiment=event_service.track_experiment,
        fallback_variant=settings.fallback_variant,
        verbose=settings.is_development,
    )


def _summarize(
    experiment: ExperimentConfig, experiment_service: ExperimentService
) -> ExperimentSummaryModel:
    return ExperimentSummaryModel(
        experiment_id=experiment.experiment_id,
        default_variant=experiment.default_variant,
        variants=[
            VariantSummaryModel(
                variant_id=variant.variant_id,
                weight=variant.weight,
                percentage=experiment_service.get_variant_percentage(
                    experiment.experiment_id, variant.variant_id
                ),
            )
            for variant in experiment.variants
        ],
    )


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or config_settings
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    if settings.experiments_file is not None:
        experiment_repo = ExperimentRepository.from_file(settings.experiments_file)
    else:
        experiment_repo = ExperimentRepository(DEFAULT_EXPERIMENTS)
    logger.info("Serving %d experiments", len(experiment_repo))

    app = FastAPI(
        title="A/B assignment service",
        description="Cookie-based experiment variant assignment",
        version="0.1.0",
    )
    app.state.settings = settings
    app.state.experiment_repo = experiment_repo
    app.state.event_repo = EventRepository(max_events=settings.event_log_size)
    app.state.rng = random.Random(settings.random_seed)

    @app.get(
        "/experiments",
        response_model=List[ExperimentSummaryModel],
        status_code=status.HTTP_200_OK,
        summary="List active experiments",
    )
    def list_experiments(
        experiment_service: ExperimentService = Depends(get_experiment_service),
    ):
        return [
            _summarize(experiment, experiment_service)
            for experiment in experiment_service.get_active_experiments()
        ]

    @app.get(
        "/experiments/{experiment_id}",
        response_model=ExperimentSummaryModel,
        status_code=status.HTTP_200_OK,
        summary="Get experiment configuration",
    )
    def get_experiment(
        experiment_id: str = Path(..., description="The ID of the experiment."),
        experiment_service: ExperimentService = Depends(get_experiment_service),
    ):
        experiment = experiment_service.get_experiment(experiment_id)
        if experiment is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Experiment {experiment_id} not found.",
            )
        return _summarize(experiment, experiment_service)

    @app.get(
        "/experiments/{experiment_id}/variant",
        response_model=VariantResponseModel,
        status_code=status.HTTP_200_OK,
        summary="Get the visitor's variant",
    )
    def get_visitor_variant(
        experiment_id: str = Path(..., description="The ID of the experiment."),
        track: bool = Query(True, description="Report a new assignment to analytics."),
        experiment_service: ExperimentService = Depends(get_experiment_service),
    ):
        """
        Returns the visitor's variant. A visitor without a valid assignment
        gets a new one, persisted in the assignment cookie.
        """
        return experiment_service.get_variant_with_meta(experiment_id, track_assignment=track)

    @app.put(
        "/experiments/{experiment_id}/variant",
        response_model=AssignmentModel,
        status_code=status.HTTP_200_OK,
        summary="Force the visitor's variant",
    )
    def put_visitor_variant(
        body: ForceVariantModel,
        experiment_id: str = Path(..., description="The ID of the experiment."),
        experiment_service: ExperimentService = Depends(get_experiment_service),
    ):
        return experiment_service.force_variant(experiment_id, body.variant_id)

    @app.get(
        "/assignments",
        response_model=Dict[str, AssignmentModel],
        status_code=status.HTTP_200_OK,
        summary="Get all of the visitor's assignments",
    )
    def get_assignments(
        experiment_service: ExperimentService = Depends(get_experiment_service),
    ):
        return experiment_service.get_all_assignments()

    @app.delete(
        "/assignments",
        status_code=status.HTTP_204_NO_CONTENT,
        summary="Clear the visitor's assignments",
    )
    def delete_assignments(
        experiment_service: ExperimentService = Depends(get_experiment_service),
    ):
        experiment_service.clear_assignments()

    @app.get(
        "/overrides",
        response_model=DebugOverridesModel,
        status_code=status.HTTP_200_OK,
        summary="Get the debug overrides of this request",
    )
    def get_overrides(
        experiment_service: ExperimentService = Depends(get_experiment_service),
    ):
        return experiment_service.get_debug_overrides()

    @app.get(
        "/events",
        response_model=List[EventModel],
        status_code=status.HTTP_200_OK,
        summary="Get tracked analytics events",
    )
    def get_events(
        request: Request,
        experiment_id: Optional[str] = Query(None),
        event_type: Optional[str] = Query(None),
    ):
        event_repo: EventRepository = request.app.state.event_repo
        return event_repo.get_events_for_experiment(experiment_id, event_type=event_type)

    return app


app = create_app()


if __name__ == "__main__":
    uvicorn.run("ab_testing.main:app", host="0.0.0.0", port=8000, reload=True)
