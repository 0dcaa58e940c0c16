"""Serverless adapter around the FastAPI app."""

import json

from drivescore import lambda_handler


def test_unrecognized_event_returns_error_body():
    response = lambda_handler.handler({"unexpected": "event"}, {})

    assert response["statusCode"] == 500
    assert "error" in json.loads(response["body"])
    assert response["headers"]["Access-Control-Allow-Origin"] == "*"
    assert response["headers"]["Content-Type"] == "application/json"


def test_events_are_forwarded_to_mangum(monkeypatch):
    seen = []

    def fake_asgi_handler(event, context):
        seen.append((event, context))
        return {"statusCode": 200, "headers": {}, "body": ""}

    monkeypatch.setattr(lambda_handler, "asgi_handler", fake_asgi_handler)
    event = {"httpMethod": "OPTIONS", "path": "/.netlify/functions/extract"}

    response = lambda_handler.handler(event, None)

    assert response["statusCode"] == 200
    assert seen == [(event, None)]
