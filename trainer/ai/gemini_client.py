# trainer/ai/gemini_client.py
import json
import logging
import re
from typing import Any, Dict

from google import genai

from ..config import settings

log = logging.getLogger(__name__)


def build_client() -> genai.Client:
    """GCP 프로젝트가 설정되어 있으면 Vertex 경유, 아니면 API 키 사용"""
    if settings.gcp_project_id:
        return genai.Client(
            vertexai=True,
            project=settings.gcp_project_id,
            location=settings.gcp_location or "us-central1",
        )
    if not settings.gemini_api_key:
        raise RuntimeError("GEMINI_API_KEY 또는 GCP_PROJECT_ID 환경변수를 설정하세요.")
    return genai.Client(api_key=settings.gemini_api_key)


def response_text(resp: Any) -> str:
    """resp.text 우선, 비어 있으면 candidates[].content.parts[].text를 이어 붙임"""
    text = (getattr(resp, "text", "") or "").strip()
    if text:
        return text

    chunks = []
    for cand in getattr(resp, "candidates", None) or []:
        content = getattr(cand, "content", None)
        if not content:
            continue
        for part in getattr(content, "parts", None) or []:
            if getattr(part, "text", None):
                chunks.append(part.text)
    return "".join(chunks).strip()


def extract_json(text: str) -> str:
    """코드펜스/앞뒤 잡음 제거 후 JSON 본문만 추출"""
    if not text:
        return ""
    m = re.search(r"```(?:json)?\s*(\{.*\})\s*```", text, flags=re.S)
    if m:
        return m.group(1)
    start = text.find("{")
    end = text.rfind("}")
    if start != -1 and end > start:
        return text[start:end + 1]
    return text.strip()


def lenient_json_loads(text: str) -> Dict[str, Any]:
    """
    자잘한 포맷 오류를 관용적으로 복구해서 dict로.
    - 꼬리 콤마 제거
    - 닫히지 않은 중괄호 보정
    복구가 안 되면 빈 dict.
    """
    s = extract_json(text).strip()
    if not s:
        return {}
    try:
        data = json.loads(s)
        return data if isinstance(data, dict) else {}
    except json.JSONDecodeError:
        pass

    s = re.sub(r",\s*([}\]])", r"\1", s)
    if s.count("{") > s.count("}"):
        s += "}" * (s.count("{") - s.count("}"))
    try:
        data = json.loads(s)
    except json.JSONDecodeError as e:
        log.warning("[GENAI] JSON 파싱 실패: %s / 원문=%r", e, text[:200])
        return {}
    return data if isinstance(data, dict) else {}
