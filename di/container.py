from __future__ import annotations

from dependency_injector import containers, providers

from core.settings import SETTINGS
from infra.generation import GeminiTextGenerator
from infra.resources import DatabaseResource


class InfrastructureContainer(containers.DeclarativeContainer):
    """Infrastructure layer dependencies."""

    # Database
    database = providers.Resource(
        DatabaseResource,
        database_url=str(SETTINGS.DATABASE.DATABASE_URL),
        ssl=SETTINGS.DATABASE.DATABASE_SSL,
    )

    # Gemini text generation
    text_generator = providers.Singleton(
        GeminiTextGenerator,
        api_key=SETTINGS.GEMINI.GEMINI_API_KEY.get_secret_value(),
        model=SETTINGS.GEMINI.GEMINI_MODEL,
        temperature=SETTINGS.GEMINI.GEMINI_TEMPERATURE,
    )


class ServiceContainer(containers.DeclarativeContainer):
    """Application services - depends on infrastructure."""

    infrastructure = providers.DependenciesContainer()

    session_manager = providers.Factory(
        "api.features.chat.session.SessionManager",
    )

    message_store = providers.Factory(
        "api.features.chat.repository.MessageStore",
    )

    # Shared by every request so turns on one conversation serialize
    conversation_locks = providers.Singleton(
        "api.features.chat.locks.ConversationLocks",
    )

    reply_orchestrator = providers.Factory(
        "api.features.chat.service.ReplyOrchestrator",
        session_manager=session_manager,
        message_store=message_store,
        text_generator=infrastructure.text_generator,
        locks=conversation_locks,
        generation_timeout=SETTINGS.GEMINI.GENERATION_TIMEOUT_SECONDS,
        max_message_chars=SETTINGS.CHAT.MAX_MESSAGE_CHARS,
        fallback_reply=SETTINGS.CHAT.FALLBACK_REPLY,
    )


class ControllerContainer(containers.DeclarativeContainer):
    """Controller-specific dependencies."""

    services = providers.DependenciesContainer()

    chat_controller = providers.Factory(
        "api.features.chat.controller.ChatController",
        orchestrator=services.reply_orchestrator,
    )


class ApplicationContainer(containers.DeclarativeContainer):
    """Main application container composing all sub-containers."""

    wiring_config = containers.WiringConfiguration(
        modules=[
            "api.shared.db",
            "api.features.chat.router",
        ]
    )

    infrastructure = providers.Container(InfrastructureContainer)
    services = providers.Container(ServiceContainer, infrastructure=infrastructure)
    controllers = providers.Container(ControllerContainer, services=services)
