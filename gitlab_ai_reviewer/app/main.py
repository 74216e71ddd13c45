from __future__ import annotations

from dotenv import load_dotenv
from flask import Flask

from gitlab_ai_reviewer.app.bootstrap import build_review_service, setup_logging
from gitlab_ai_reviewer.app.config import AppSettings
from gitlab_ai_reviewer.app.orchestrator import WebhookOrchestrator
from gitlab_ai_reviewer.app.webhook import register_webhook_routes
from gitlab_ai_reviewer.domains.review.tasks import MergeRequestReviewTask
from gitlab_ai_reviewer.infra.queue.inprocess_queue import InProcessWorkerQueue


def create_app(settings: AppSettings | None = None) -> Flask:
    if settings is None:
        load_dotenv(override=False)
        settings = AppSettings.from_env()
    setup_logging(settings.log_level)

    review_service = build_review_service(settings)
    review_queue: InProcessWorkerQueue[MergeRequestReviewTask] = InProcessWorkerQueue(
        name="review",
        handler=review_service.run_task,
        worker_concurrency=settings.review_worker_concurrency,
        max_pending_jobs_soft_limit=settings.review_max_pending_jobs,
    )
    orchestrator = WebhookOrchestrator(enqueue_review=review_queue.enqueue)

    app = Flask(__name__)
    app.config["PORT"] = settings.port
    register_webhook_routes(app, settings=settings, orchestrator=orchestrator)
    return app


def main() -> None:
    app = create_app()
    app.run(host="0.0.0.0", port=app.config["PORT"])


if __name__ == "__main__":
    main()
