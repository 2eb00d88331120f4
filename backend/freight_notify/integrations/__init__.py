"""Adapters for the traffic, text-generation and email services."""

from .email import SendGridEmailSender
from .messages import DelayMessageGenerator, build_prompt, fallback_message
from .traffic import GoogleMapsTrafficClient

__all__ = [
    "DelayMessageGenerator",
    "GoogleMapsTrafficClient",
    "SendGridEmailSender",
    "build_prompt",
    "fallback_message",
]
