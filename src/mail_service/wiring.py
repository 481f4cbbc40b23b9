"""Builds the email queue and its collaborators from settings."""
from __future__ import annotations

from typing import Iterable

import httpx

from mail_service.application.policies.retry import RetryPolicy
from mail_service.application.ports.delivery import DeliveryObserver, EmailDeliverer
from mail_service.config import Settings, settings
from mail_service.infrastructure.email.emailjs import EmailJSDeliverer, LoggingDeliverer
from mail_service.services.email_queue import EmailQueue


def build_http_client(cfg: Settings = settings) -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=cfg.EMAILJS_TIMEOUT)


def build_deliverer(client: httpx.AsyncClient, cfg: Settings = settings) -> EmailDeliverer:
    if cfg.EMAIL_DELIVERY_MODE == "log":
        return LoggingDeliverer()
    return EmailJSDeliverer(
        client,
        api_url=cfg.EMAILJS_API_URL,
        service_id=cfg.EMAILJS_SERVICE_ID,
        public_key=cfg.EMAILJS_PUBLIC_KEY,
        private_key=cfg.EMAILJS_PRIVATE_KEY,
    )


def build_retry_policy(cfg: Settings = settings) -> RetryPolicy:
    return RetryPolicy(
        base_delay=cfg.EMAIL_RETRY_BASE_DELAY,
        max_delay=cfg.EMAIL_RETRY_MAX_DELAY,
        jitter=cfg.EMAIL_RETRY_JITTER,
        promote_after=cfg.EMAIL_RETRY_PROMOTE_AFTER,
    )


def build_email_queue(
    deliverer: EmailDeliverer,
    observers: Iterable[DeliveryObserver] = (),
    cfg: Settings = settings,
) -> EmailQueue:
    return EmailQueue(
        deliverer,
        concurrency=cfg.EMAIL_QUEUE_CONCURRENCY,
        retry_policy=build_retry_policy(cfg),
        attempt_timeout=cfg.EMAIL_ATTEMPT_TIMEOUT,
        observers=observers,
    )
