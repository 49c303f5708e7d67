"""Publicador de eventos de alertas a Redis Pub/Sub."""

from __future__ import annotations

import json
import logging
from typing import Optional

import redis

from .lifecycle import LifecycleEvent

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL = "campus:alerts"


class RedisConnection:
    """Gestiona la conexión a Redis."""

    def __init__(self, url: str):
        self._url = url
        self._client: Optional[redis.Redis] = None
        self._connected = False

    @property
    def client(self) -> Optional[redis.Redis]:
        return self._client

    @property
    def is_connected(self) -> bool:
        return self._connected

    def connect(self) -> bool:
        """Conecta a Redis. Un fallo deja el publicador deshabilitado."""
        try:
            self._client = redis.Redis.from_url(
                self._url,
                decode_responses=False,
                socket_timeout=5.0,
                socket_connect_timeout=5.0,
            )
            self._client.ping()
            self._connected = True
            logger.info("[REDIS] Connected: %s", self._url.split("@")[-1])
            return True
        except redis.RedisError as e:
            self._connected = False
            logger.warning("[REDIS] Connection failed: %s", e)
            return False

    def disconnect(self) -> None:
        if self._client is not None:
            try:
                self._client.close()
            except redis.RedisError as e:
                logger.debug("[REDIS] close failed: %s", e)
        self._connected = False


class AlertEventPublisher:
    """Observador del ciclo de vida que reenvía cada evento a un canal.

    Se registra con `AlertLifecycleManager.subscribe(publisher)`.
    """

    def __init__(self, connection: RedisConnection, channel: str = DEFAULT_CHANNEL):
        self._conn = connection
        self._channel = channel

    def __call__(self, event: LifecycleEvent) -> None:
        self.publish(event)

    def publish(self, event: LifecycleEvent) -> bool:
        """Publica un evento.

        Returns:
            True si se publicó correctamente
        """
        if not self._conn.is_connected or self._conn.client is None:
            return False
        try:
            payload = json.dumps({"type": "alert", **event.to_dict()}, ensure_ascii=False)
            self._conn.client.publish(self._channel, payload)
            logger.debug("[REDIS] Published: kind=%s id=%s", event.kind.value, event.alert.id)
            return True
        except redis.RedisError as e:
            logger.warning("[REDIS] Publish failed: %s", e)
            return False

    @property
    def channel(self) -> str:
        return self._channel
