# AWS Lambda / Netlify handler for the extraction API

import json

from loguru import logger
from mangum import Mangum

from drivescore.main import app
from drivescore.routers.extraction import CORS_HEADERS

# Wrap the FastAPI app with Mangum for Lambda compatibility
asgi_handler = Mangum(app, lifespan="off")


def handler(event, context):
    """
    Lambda handler for the extraction API
    Handles /api/extract and /.netlify/functions/extract
    """
    try:
        return asgi_handler(event, context)
    except Exception as e:
        logger.exception("Serverless adapter failed")
        return {
            "statusCode": 500,
            "body": json.dumps({"error": str(e)}),
            "headers": dict(CORS_HEADERS),
        }
