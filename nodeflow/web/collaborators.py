#!/usr/bin/env python3
"""
Collaborator services called by trigger and llm nodes.

- ``/functions/v1/http-trigger`` echoes the request it receives
- ``/functions/v1/llm-processor`` forwards a prompt to Gemini

Run with ``nodeflow-collaborators`` (default port 8001, the port the default
CollaboratorConfig points at).
"""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import requests
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from nodeflow.engine.errors import CollaboratorError
from nodeflow.utils.common import setup_logging
from nodeflow.utils.config import get_config_manager

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-1.5-flash"
TIMEOUT = 60

GENERATION_CONFIG = {
    "temperature": 0.7,
    "topK": 40,
    "topP": 0.95,
    "maxOutputTokens": 1024,
}

app = FastAPI(title="nodeflow collaborators")
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["authorization", "x-client-info", "apikey", "content-type"],
)


def utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def build_system_prompt(input_data: Any, prompt: str) -> str:
    """Wrap the user's instructions and input data for the model"""
    if isinstance(input_data, (dict, list)):
        formatted_input = json.dumps(input_data, indent=2)
    else:
        formatted_input = str(input_data)

    return (
        "You are a data processor in a workflow automation system. "
        "Process the following data according to the user's instructions.\n\n"
        f"Input Data:\n{formatted_input}\n\n"
        f"User Instructions: {prompt}\n\n"
        "Please provide a concise and structured response."
    )


def call_gemini(api_key: str, model: str, text: str,
                api_url: str = "https://generativelanguage.googleapis.com/v1beta/models",
                session: Optional[requests.Session] = None) -> str:
    """
    Generate text with the Gemini generateContent endpoint.

    Raises:
        CollaboratorError: On a non-2xx response
    """
    http = session or requests
    response = http.post(
        f"{api_url}/{model}:generateContent",
        params={"key": api_key},
        json={
            "contents": [{"parts": [{"text": text}]}],
            "generationConfig": GENERATION_CONFIG,
        },
        timeout=TIMEOUT,
    )
    if not response.ok:
        logger.error("Gemini API error: %s", response.text)
        raise CollaboratorError(
            f"Gemini API error: {response.status_code} {response.text}",
            status_code=response.status_code,
            body=response.text,
        )

    result = response.json()
    try:
        return result["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return "No response generated"


@app.api_route("/functions/v1/http-trigger", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
async def http_trigger(request: Request):
    """Echo the incoming request as trigger data"""
    logger.info("HTTP trigger received %s request", request.method)
    try:
        body: Any = None
        if request.method != "GET":
            raw = await request.body()
            body = raw.decode("utf-8") if raw else None
            if body and "application/json" in request.headers.get("content-type", ""):
                try:
                    body = json.loads(body)
                except ValueError as e:
                    logger.info("Failed to parse JSON body: %s", e)

        return {
            "success": True,
            "message": "HTTP trigger executed successfully",
            "data": {
                "method": request.method,
                "url": str(request.url),
                "headers": dict(request.headers),
                "body": body,
                "timestamp": utc_timestamp(),
            },
            "triggerNodeId": request.query_params.get("triggerNodeId", "unknown"),
        }
    except Exception as e:
        logger.exception("HTTP trigger error")
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})


@app.post("/functions/v1/llm-processor")
def llm_processor(payload: Dict[str, Any]):
    """Run the prompt and input data through the configured model"""
    input_data = payload.get("inputData")
    prompt = payload.get("prompt") or ""
    model = payload.get("model") or DEFAULT_MODEL
    logger.info("LLM processor received prompt for model %s", model)

    try:
        config = get_config_manager().load()
        api_key = config.collaborators.gemini_api_key
        if not api_key:
            raise CollaboratorError("GEMINI_API_KEY not configured")

        generated = call_gemini(
            api_key,
            model,
            build_system_prompt(input_data, prompt),
            api_url=config.collaborators.gemini_api_url,
        )
    except (CollaboratorError, requests.RequestException, ValueError) as e:
        logger.error("LLM processor error: %s", e)
        return JSONResponse(status_code=500, content={"success": False, "error": str(e)})

    logger.info("LLM response generated successfully")
    return {
        "success": True,
        "data": {
            "processed_text": generated,
            "input_data": input_data,
            "prompt_used": prompt,
            "model_used": model,
            "timestamp": utc_timestamp(),
        }
    }


def main(argv=None):
    """Run the collaborator services"""
    import argparse
    parser = argparse.ArgumentParser(description="nodeflow collaborator services")
    parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    parser.add_argument("--port", type=int, default=8001, help="Port to bind to")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")
    parser.add_argument("--no-prompt", action="store_true",
                        help="Do not prompt for a missing Gemini API key")

    args = parser.parse_args(argv)
    setup_logging(args.verbose)

    # Prompt only on an interactive terminal
    prompt = sys.stdin.isatty() and not args.no_prompt
    if not get_config_manager().get_gemini_api_key(prompt=prompt):
        logger.warning("GEMINI_API_KEY not configured, llm-processor requests will fail")

    uvicorn.run("nodeflow.web.collaborators:app", host=args.host, port=args.port)


if __name__ == "__main__":
    main()
