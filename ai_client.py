import os
import logging
import requests

from response_parser import extract_fields
from site_content import GenerationResult, build_result

logger = logging.getLogger("ai-client")

# Read the key from environment; never hardcode it in the repo
GENAI_API_KEY = os.environ.get("GOOGLE_AI_API_KEY") or os.environ.get("GEMINI_API_KEY")
if not GENAI_API_KEY:
  logger.warning("GOOGLE_AI_API_KEY not set. Generation will fail unless provided at runtime.")

DEFAULT_MODEL = "gemini-1.5-flash"
DEFAULT_API_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_TIMEOUT = 120.0


class GenAIError(RuntimeError):
  """The generative model endpoint answered with an HTTP error."""

  def __init__(self, message: str, status_code: int = None, body: str = ""):
    super().__init__(message)
    self.status_code = status_code
    self.body = body


class AIResponseError(ValueError):
  """Model output could not be turned into a usable page, even with fallbacks."""


def build_prompt(prompt: str) -> str:
  return f"""
You are an expert web developer. Create a complete, functional website based on the following description:
"{prompt}"
Respond ONLY with a valid JSON object with these keys:
- html: complete HTML code
- css: complete CSS code
- js: complete JavaScript code
Requirements:
1. The website must be fully responsive
2. Use modern, clean design
3. Include all necessary functionality
4. No placeholders - use actual content
5. No explanations or markdown formatting. Only return a raw JSON object.
"""


class GenAIClient:
  """Thin client for the Gemini ``generateContent`` REST endpoint.

  One synchronous POST per generation; the response text is handed to the
  tolerant parsing pipeline, which always produces a full page.
  """

  def __init__(self, api_key: str = None, model: str = None, timeout: float = None):
    self.api_key = api_key or GENAI_API_KEY or os.environ.get("GOOGLE_AI_API_KEY") or os.environ.get("GEMINI_API_KEY")
    if not self.api_key:
      raise RuntimeError("GOOGLE_AI_API_KEY must be set in environment")
    self.model = model or os.environ.get("GENAI_MODEL", DEFAULT_MODEL)
    self.base_url = os.environ.get("GENAI_API_URL", DEFAULT_API_URL).rstrip("/")
    self.timeout = timeout or float(os.environ.get("GENAI_TIMEOUT", DEFAULT_TIMEOUT))

  @property
  def url(self) -> str:
    return f"{self.base_url}/models/{self.model}:generateContent"

  def generate_content(self, prompt: str) -> str:
    payload = {"contents": [{"role": "user", "parts": [{"text": build_prompt(prompt)}]}]}
    headers = {"Content-Type": "application/json", "x-goog-api-key": self.api_key}

    resp = requests.post(self.url, headers=headers, json=payload, timeout=self.timeout)
    try:
      resp.raise_for_status()
    except requests.HTTPError as e:
      body = resp.text or ""
      logger.error("GenAI request failed: status=%s body=%s", resp.status_code, body[:1000])
      raise GenAIError(f"GenAI API error: {resp.status_code}", status_code=resp.status_code, body=body) from e

    # raises json.JSONDecodeError (a ValueError) when the body is not JSON
    data = resp.json()
    candidates = data.get("candidates") or []
    if not candidates:
      logger.warning("GenAI returned no candidates; feedback=%s", data.get("promptFeedback"))
      return ""
    parts = (candidates[0].get("content") or {}).get("parts") or []
    text = "".join(p.get("text", "") for p in parts if isinstance(p, dict))
    if not text:
      logger.warning("GenAI candidate had no text; finishReason=%s", candidates[0].get("finishReason"))
    return text

  def generate_website(self, prompt: str) -> GenerationResult:
    text = self.generate_content(prompt)
    logger.info("Model answered with %d characters", len(text))
    fields = extract_fields(text)
    result = build_result(fields, prompt)
    if not result.html.strip():
      raise AIResponseError("Missing required code fields in AI response")
    return result
