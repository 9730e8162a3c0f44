"""
Phishing Scan API Endpoints
Scans message text and URLs for phishing indicators, optionally enriched with
domain and sender reputation (enhanced analysis)

Security: Input validation before analysis
Rate limiting: per-IP limit on scan endpoints
"""

from typing import List, Literal, Optional
from urllib.parse import urlparse
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel
import logging
from slowapi import Limiter
from slowapi.util import get_remote_address

from phishshield.api.routes.messages import MessageOut
from phishshield.core.analyzer import AnalysisResult, PhishingAnalyzer
from phishshield.core.config import settings
from phishshield.core.input_sanitizer import (
    MAX_URL_LENGTH,
    log_security_event,
    sanitize_scan_content,
    sanitize_sender,
)
from phishshield.services.message_store import MessageStore
from phishshield.utils.startup import get_analyzer, get_message_store

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address, enabled=settings.RATE_LIMIT_ENABLED)
router = APIRouter()

DEFAULT_SENDER = "Manual Scan"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ScanTextRequest(CamelModel):
    """Request body for a text scan"""
    content: str
    sender: Optional[str] = None
    source: Literal["sms", "email", "social", "manual"] = "manual"
    enhanced_analysis: bool = False
    save_to_history: bool = True


class ScanUrlRequest(CamelModel):
    """Request body for a URL scan"""
    url: str
    enhanced_analysis: bool = False

    @field_validator("url")
    @classmethod
    def validate_url_format(cls, value: str) -> str:
        value = value.strip()
        if len(value) > MAX_URL_LENGTH:
            raise ValueError(f"URL exceeds maximum length of {MAX_URL_LENGTH} characters")
        parsed = urlparse(value)
        if not parsed.scheme or not parsed.netloc:
            raise ValueError("Invalid URL format")
        return value


class DomainInfo(CamelModel):
    """Reputation verdict for the scanned domain"""
    domain: str
    reputation_score: int
    malicious: bool
    suspicious: bool
    categories: List[str]
    reported_times: int
    sources: List[str]
    last_checked: str


class SenderInfo(CamelModel):
    """Authentication posture of the sender's domain"""
    email: str
    domain: str
    reputation_score: int
    has_dmarc: bool
    has_spf: bool
    has_dkim: bool
    suspicious_domain: bool
    new_domain: bool
    security_level: Literal["high", "medium", "low", "unknown"]
    creation_date: Optional[str] = None


class ThreatData(CamelModel):
    domain_info: Optional[DomainInfo] = None
    sender_info: Optional[SenderInfo] = None


class AnalysisResponse(CamelModel):
    """Response model for a scan"""
    threat_level: Literal["safe", "suspicious", "phishing"]
    reasons: List[str]
    content: str
    threat_data: Optional[ThreatData] = None

    @classmethod
    def from_result(cls, result: AnalysisResult) -> "AnalysisResponse":
        return cls.model_validate(result.to_dict())


class ScanTextResponse(CamelModel):
    analysis: AnalysisResponse
    message: Optional[MessageOut] = None


def _client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


@router.post("/scan/text", response_model=ScanTextResponse, response_model_exclude_unset=True)
@limiter.limit(settings.SCAN_RATE_LIMIT)
async def scan_text(
    request: Request,
    payload: ScanTextRequest,
    analyzer: PhishingAnalyzer = Depends(get_analyzer),
    store: MessageStore = Depends(get_message_store)
) -> ScanTextResponse:
    """
    Scan message text for phishing indicators

    With enhancedAnalysis the first URL in the text and the sender address
    are checked against threat intelligence; the threat level can only go up.
    When saveToHistory is set the verdict is stored in the scan history.
    """
    client_ip = _client_ip(request)

    content, content_error = sanitize_scan_content(payload.content, settings.MAX_CONTENT_LENGTH)
    if content_error:
        log_security_event("INVALID_SCAN_CONTENT", content_error, client_ip)
        raise HTTPException(status_code=400, detail=content_error)

    sender, sender_error = sanitize_sender(payload.sender)
    if sender_error:
        log_security_event("INVALID_SENDER", sender_error, client_ip)
        raise HTTPException(status_code=400, detail=sender_error)

    try:
        result = await analyzer.scan_text(content, sender, enhanced=payload.enhanced_analysis)
    except Exception as e:
        logger.error(f"Text scan failed: {e}")
        raise HTTPException(status_code=500, detail="Error scanning text")

    message = None
    if payload.save_to_history:
        threat_details = {"reasons": list(result.reasons)}
        if result.threat_data is not None:
            threat_details["threatData"] = result.threat_data.to_dict()
        message = store.create_message(
            content=content,
            sender=sender or DEFAULT_SENDER,
            threat_level=result.threat_level,
            threat_details=threat_details,
            source=payload.source,
        )

    logger.info(
        f"Text scan: level={result.threat_level.value}, reasons={len(result.reasons)}, "
        f"enhanced={payload.enhanced_analysis}"
    )

    return ScanTextResponse(
        analysis=AnalysisResponse.from_result(result),
        message=MessageOut.from_message(message) if message else None
    )


@router.post("/scan/url", response_model=AnalysisResponse, response_model_exclude_unset=True)
@limiter.limit(settings.SCAN_RATE_LIMIT)
async def scan_url(
    request: Request,
    payload: ScanUrlRequest,
    analyzer: PhishingAnalyzer = Depends(get_analyzer)
) -> AnalysisResponse:
    """
    Scan a URL for threats

    With enhancedAnalysis the URL's domain is checked against threat
    intelligence; the threat level can only go up.
    """
    try:
        result = await analyzer.scan_url(payload.url, enhanced=payload.enhanced_analysis)
    except Exception as e:
        logger.error(f"URL scan failed: {e}")
        raise HTTPException(status_code=500, detail="Error scanning URL")

    logger.info(
        f"URL scan: level={result.threat_level.value}, reasons={len(result.reasons)}, "
        f"enhanced={payload.enhanced_analysis}"
    )

    return AnalysisResponse.from_result(result)
