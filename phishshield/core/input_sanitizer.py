"""
Input Sanitization and Validation Module
Checks scan input before it reaches the analyzer
"""

import logging
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

# Maximum allowed input lengths
MAX_SENDER_LENGTH = 320
MAX_URL_LENGTH = 2048


def sanitize_scan_content(content: str, max_length: int = 50000) -> Tuple[str, Optional[str]]:
    """
    Validate message content for phishing analysis.

    Returns:
        Tuple of (content, error_message)
        If error_message is not None, the content should be rejected
    """
    if not content or not content.strip():
        return "", "Message content is required"

    # Check length
    if len(content) > max_length:
        return "", f"Message content exceeds maximum length of {max_length} characters"

    # Content is analyzed as-is; only reject what cannot be text
    if '\x00' in content:
        logger.warning("Blocked null byte in message content")
        return "", "Invalid message content"

    return content, None


def sanitize_sender(sender: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    """Strip a sender address and enforce its length limit"""
    if sender is None:
        return None, None

    sender = sender.strip()
    if not sender:
        return None, None

    if len(sender) > MAX_SENDER_LENGTH:
        return None, f"Sender exceeds maximum length of {MAX_SENDER_LENGTH} characters"

    if '\x00' in sender:
        return None, "Invalid sender"

    return sender, None


def log_security_event(event_type: str, details: str, ip_address: str = None):
    """
    Log security-related events for monitoring and alerting.
    """
    log_msg = f"SECURITY_EVENT: {event_type}"
    if ip_address:
        log_msg += f" | IP: {ip_address}"
    log_msg += f" | Details: {details}"
    logger.warning(log_msg)
