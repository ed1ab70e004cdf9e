"""AWS Lambda handler for the blocking job.

Deployed as a Lambda function triggered by an EventBridge schedule.

Event format:
  {"mode": "block"}    (default)
  {"mode": "unblock"}
"""

from __future__ import annotations

import json
import logging
import os

from scripts.inactive_users.config import load_config
from scripts.inactive_users.job import BlockJob, JobContext
from scripts.inactive_users.logging_config import configure_logging

logger = logging.getLogger("inactive_users.lambda")

MODES = ("block", "unblock")


def handler(event: dict, context) -> dict:
    """Lambda entry point."""
    configure_logging(os.environ.get("LOG_LEVEL", "INFO"), os.environ.get("RATE_LIMIT_LOG_LEVEL"))

    mode = (event or {}).get("mode", "block")
    if mode not in MODES:
        return {"statusCode": 400, "body": f"Unknown mode '{mode}', expected one of {MODES}"}

    logger.info("Lambda invoked for mode=%s", mode)

    job_context = None
    try:
        job_context = JobContext.create(load_config())
        job = BlockJob(job_context)
        if mode == "unblock":
            results = {"unblocked": job.undo()}
        else:
            results = job.run().to_dict()

        logger.info("Run complete for %s: %s", mode, results)
        return {
            "statusCode": 200,
            "body": json.dumps({"mode": mode, "results": results}),
        }
    except Exception as exc:
        logger.error("Run failed for %s: %s", mode, exc, exc_info=True)
        return {
            "statusCode": 500,
            "body": json.dumps({"mode": mode, "error": str(exc)}),
        }
    finally:
        if job_context is not None:
            job_context.close()
