"""User code delivery channels."""

from anonauth.transports.base import Transporter
from anonauth.transports.console import ConsoleTransporter
from anonauth.transports.email import ResendEmailTransporter
from anonauth.transports.registry import TransportRegistry
from anonauth.transports.sms import HttpSmsTransporter

__all__ = [
    "ConsoleTransporter",
    "HttpSmsTransporter",
    "ResendEmailTransporter",
    "TransportRegistry",
    "Transporter",
]
