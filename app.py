from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from typing import Optional
import json
import logging
import os
import time

import requests

from ai_client import AIResponseError, GenAIClient, GenAIError
from deploy_bundle import fallback_project_name, is_valid_project_name, sanitize_project_name
from hosting_ops import HostingError, get_hosting_ops

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("webcraft")

MAX_PROMPT_LENGTH = 5000
MAX_HTML_SIZE = 25 * 1024 * 1024

CORS_ORIGINS = [o.strip() for o in os.environ.get("CORS_ORIGINS", "http://localhost:5173,http://localhost:3000").split(",") if o.strip()]

app = FastAPI(title="WebCraft")
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With"],
    max_age=3600,
)


class GenerateRequest(BaseModel):
    prompt: Optional[str] = None


class DeployRequest(BaseModel):
    html: Optional[str] = None
    css: Optional[str] = None
    js: Optional[str] = None
    projectName: Optional[str] = None


def error_response(status_code: int, error: str, details: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "details": details})


async def read_json(req: Request) -> dict:
    body = await req.body()
    if not body:
        raise ValueError("Empty request body")
    payload = json.loads(body)
    if not isinstance(payload, dict):
        raise ValueError("Request body must be a JSON object")
    return payload


@app.post("/generate")
async def generate_website(req: Request):
    try:
        gr = GenerateRequest(**(await read_json(req)))
    except Exception as e:
        logger.warning("Invalid generate payload: %s", e)
        return error_response(400, "Validation Error", "Request body must be a JSON object with a prompt")

    prompt = gr.prompt or ""
    if not prompt.strip():
        return error_response(400, "Validation Error", "Prompt cannot be empty")
    if len(prompt) > MAX_PROMPT_LENGTH:
        return error_response(400, "Validation Error", f"Prompt is too long (max {MAX_PROMPT_LENGTH} characters)")

    logger.info("Generating website for prompt: %s", prompt[:100])
    try:
        result = await run_in_threadpool(GenAIClient().generate_website, prompt)
    except AIResponseError as e:
        logger.error("Invalid AI response format: %s", e)
        return error_response(500, "AI Response Error", "The AI response is missing required fields. Please try again.")
    except ValueError as e:
        # undecodable provider body
        logger.error("JSON parsing error: %s", e)
        return error_response(500, "JSON Parsing Error", "The AI response contains invalid JSON format. Please try again.")
    except (GenAIError, requests.RequestException, RuntimeError):
        logger.exception("Website generation failed")
        return error_response(500, "Generation Error", "An unexpected error occurred during website generation. Please try again later.")
    except Exception:
        logger.exception("Unexpected error during website generation")
        return error_response(500, "Generation Error", "An unexpected error occurred during website generation. Please try again later.")

    logger.info("Website generated successfully with HTML length: %d", len(result.html))
    return result.to_dict()


@app.post("/deploy")
async def deploy_website(req: Request):
    logger.info("Deploy endpoint called")
    try:
        hosting = get_hosting_ops()
    except ValueError as e:
        logger.error("Hosting provider misconfigured: %s", e)
        return error_response(503, "Configuration Error", str(e))
    if not hosting.is_configured:
        logger.error("%s token not configured", hosting.name)
        return error_response(503, "Configuration Error",
                              "Deployment service is not properly configured. Please check server configuration.")

    try:
        dr = DeployRequest(**(await read_json(req)))
    except Exception as e:
        logger.warning("Invalid deploy payload: %s", e)
        return error_response(400, "Validation Error", "Request body must be a JSON object")

    if not dr.html or not dr.html.strip():
        return error_response(400, "Validation Error", "HTML content cannot be empty")
    if len(dr.html) > MAX_HTML_SIZE:
        logger.error("HTML content too large: %d bytes", len(dr.html))
        return error_response(400, "Validation Error", "HTML content is too large (max 25MB)")
    if not dr.projectName or not dr.projectName.strip():
        return error_response(400, "Validation Error", "Project name cannot be empty")

    project_name = sanitize_project_name(dr.projectName)
    if not is_valid_project_name(project_name):
        project_name = fallback_project_name()

    logger.info("Deploying website with project name: %s", project_name)
    logger.info("Content sizes - HTML: %d bytes, CSS: %d bytes, JS: %d bytes",
                len(dr.html), len(dr.css or ""), len(dr.js or ""))
    try:
        deployment_url = await run_in_threadpool(
            hosting.deploy_site, dr.html, dr.css or "", dr.js or "", project_name)
    except ValueError as e:
        logger.error("Invalid deployment request: %s", e)
        return error_response(400, "Invalid Request", str(e))
    except HostingError as e:
        logger.exception("Deployment error")
        return error_response(500, "Deployment Error", f"Failed to deploy website: {e}")
    except Exception as e:
        logger.exception("Unexpected deployment error")
        return error_response(500, "Deployment Error", f"Failed to deploy website: {e}")

    logger.info("Website deployed successfully to: %s", deployment_url)
    return {
        "html": dr.html,
        "css": dr.css,
        "js": dr.js,
        "deploymentUrl": deployment_url,
        "projectName": project_name,
        "deployed": True,
    }


@app.get("/health")
def health():
    try:
        hosting = get_hosting_ops()
        hosting_name, hosting_ready = hosting.name, hosting.is_configured
    except ValueError:
        hosting_name, hosting_ready = os.environ.get("HOSTING_PROVIDER", "unknown"), False
    generator_ready = bool(os.environ.get("GOOGLE_AI_API_KEY") or os.environ.get("GEMINI_API_KEY"))
    return {
        "status": "UP",
        "timestamp": int(time.time() * 1000),
        "services": {
            "websiteGenerator": "UP" if generator_ready else "NOT_CONFIGURED",
            f"{hosting_name.lower()}Deployment": "UP" if hosting_ready else "NOT_CONFIGURED",
        },
    }


@app.get("/diagnostics")
def diagnostics():
    """Probe the hosting provider: token, account and a throwaway test site.

    Secret values are never returned, only whether they work.
    """
    logger.info("Running hosting diagnostics...")
    try:
        return get_hosting_ops().run_diagnostics()
    except Exception as e:
        logger.exception("Diagnostics error")
        return error_response(500, "Diagnostics Error", f"Failed to run diagnostics: {e}")


@app.get("/deployment-status")
def deployment_status():
    try:
        hosting = get_hosting_ops()
    except ValueError as e:
        logger.error("Status check error: %s", e)
        return error_response(500, "Status Error", "Failed to check deployment status")
    configured = hosting.is_configured
    return {
        "configured": configured,
        "service": hosting.name,
        "message": "Deployment service is ready" if configured else "Deployment service not configured",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=os.environ.get("HOST", "0.0.0.0"), port=int(os.environ.get("PORT", "8080")))
