"""Run the review pipeline once from a GitLab CI merge request pipeline.

Reads ``CI_PROJECT_ID`` and ``CI_MERGE_REQUEST_IID`` (set by GitLab for
merge request pipelines) plus the usual settings, reviews the full current
changeset and exits 0 on success, 1 on any failure.
"""

from __future__ import annotations

import logging
import os
import sys

from dotenv import load_dotenv

from gitlab_ai_reviewer.app.bootstrap import build_review_service, setup_logging
from gitlab_ai_reviewer.app.config import AppSettings


logger = logging.getLogger("gitlab_ai_reviewer.ci")


def main() -> int:
    load_dotenv(override=False)
    setup_logging(os.environ.get("LOG_LEVEL", "INFO"))
    logger.info("Starting AI code review via GitLab CI")

    project_id_raw = os.environ.get("CI_PROJECT_ID")
    mr_iid_raw = os.environ.get("CI_MERGE_REQUEST_IID")
    if not mr_iid_raw:
        logger.error(
            "This job must run in a merge request context (CI_MERGE_REQUEST_IID is not set)"
        )
        return 1

    try:
        project_id = int(project_id_raw or "")
        merge_request_iid = int(mr_iid_raw)
    except ValueError:
        logger.error(
            "CI_PROJECT_ID and CI_MERGE_REQUEST_IID must be integers: project_id=%r, mr_id=%r",
            project_id_raw,
            mr_iid_raw,
        )
        return 1

    try:
        settings = AppSettings.from_env()
        review_service = build_review_service(settings)
        review_service.run_full_review(
            project_id=project_id,
            merge_request_iid=merge_request_iid,
        )
    except Exception:  # noqa: BLE001 - CI boundary maps every failure to exit code 1
        logger.exception(
            "Review failed: project_id=%s, mr_id=%s",
            project_id,
            merge_request_iid,
        )
        return 1

    logger.info("Review completed successfully")
    return 0


if __name__ == "__main__":
    sys.exit(main())
