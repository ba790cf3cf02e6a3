"""Dependency Injection Container.

This module provides a centralized DI container using dependency-injector.
Lifecycles:
- Singleton: One instance for the entire application (clients, stores, configs)
- Factory: New instance every time (engines, pipelines)

Usage:
    # In a script
    from mood_radar.core.container import container

    pipeline = container.sentiment_pipeline()
    async for event in pipeline.stream(request):
        ...

    # In tests
    with container.infrastructure.snapshot_store.override(fake_store):
        ...
"""

from dependency_injector import containers, providers
from redis.asyncio import Redis as AsyncRedis

from mood_radar.core.config import Config, get_config


class InfrastructureContainer(containers.DeclarativeContainer):
    """Infrastructure layer dependencies (caches, stores, external clients).

    These are Singleton: one connection pool per process.
    """

    global_config = providers.Dependency(instance_of=Config)

    # ============================================
    # Redis
    # ============================================

    redis_async_client = providers.Singleton(
        AsyncRedis.from_url,
        url=global_config.provided.redis_url,
        encoding="utf-8",
        decode_responses=True,
        socket_connect_timeout=5,
        socket_keepalive=True,
    )

    # ============================================
    # HTTP Client
    # ============================================

    http_client = providers.Singleton(
        "mood_radar.infrastructure.http_client.HTTPClient",
        timeout=global_config.provided.http_timeout,
    )

    # ============================================
    # Snapshot Store (selected by SNAPSHOT_BACKEND)
    # ============================================

    snapshot_store = providers.Selector(
        global_config.provided.snapshot_backend,
        memory=providers.Singleton(
            "mood_radar.services.signals.snapshot.InMemorySnapshotStore",
        ),
        redis=providers.Singleton(
            "mood_radar.services.signals.snapshot.RedisSnapshotStore",
            redis=redis_async_client,
        ),
    )


class ConfigContainer(containers.DeclarativeContainer):
    """Configuration models container.

    Provides typed Pydantic config models for services, loaded once from
    config/defaults.yaml.
    """

    analysis_config = providers.Singleton(
        "mood_radar.core.config_loader.load_analysis_config",
    )

    dedup_config = providers.Singleton(lambda config: config.dedup, config=analysis_config)

    budget_config = providers.Singleton(lambda config: config.budget, config=analysis_config)

    suggestion_config = providers.Singleton(
        lambda config: config.suggestions, config=analysis_config
    )

    aggregation_config = providers.Singleton(
        lambda config: config.aggregation, config=analysis_config
    )


class ServiceContainer(containers.DeclarativeContainer):
    """Service layer dependencies.

    Engines and pipelines are Factory; provider clients are Singleton
    because they only hold configuration and the shared HTTP client.
    """

    global_config = providers.Dependency(instance_of=Config)
    infrastructure = providers.DependenciesContainer()
    configs = providers.DependenciesContainer()

    # ============================================
    # Signal Engines
    # ============================================

    signal_deduplicator = providers.Factory(
        "mood_radar.services.signals.deduplicator.SignalDeduplicator",
        config=configs.dedup_config,
    )

    suggestion_builder = providers.Factory(
        "mood_radar.services.signals.suggestions.SuggestionBuilder",
        config=configs.suggestion_config,
    )

    signal_aggregator = providers.Factory(
        "mood_radar.services.signals.aggregator.SignalAggregator",
        config=configs.aggregation_config,
    )

    snapshot_diff_engine = providers.Factory(
        "mood_radar.services.signals.snapshot.SnapshotDiffEngine",
        store=infrastructure.snapshot_store,
        key=global_config.provided.snapshot_key,
        max_rising_narratives=configs.aggregation_config.provided.max_rising_narratives,
    )

    sentiment_reporter = providers.Factory(
        "mood_radar.services.pipeline.report.SentimentReporter",
        aggregator=signal_aggregator,
        diff_engine=snapshot_diff_engine,
        suggestion_builder=suggestion_builder,
    )

    # ============================================
    # Providers
    # ============================================

    retrieval_provider = providers.Singleton(
        "mood_radar.services.providers.perplexity.PerplexityRetrievalProvider",
        api_key=global_config.provided.perplexity_api_key,
        http_client=infrastructure.http_client,
        api_url=global_config.provided.perplexity_api_url,
        model=global_config.provided.perplexity_model,
    )

    classification_provider = providers.Singleton(
        "mood_radar.services.providers.mino.MinoClassificationProvider",
        api_key=global_config.provided.mino_api_key,
        api_url=global_config.provided.mino_api_url,
        http_client=infrastructure.http_client,
        model=global_config.provided.mino_model,
        budget=configs.budget_config,
    )

    agent_client = providers.Singleton(
        "mood_radar.services.providers.mino.MinoAgentClient",
        api_key=global_config.provided.mino_api_key,
        api_url=global_config.provided.mino_api_url,
        http_client=infrastructure.http_client,
        agent_url=global_config.provided.mino_agent_url,
    )

    # ============================================
    # Pipelines
    # ============================================

    sentiment_pipeline = providers.Factory(
        "mood_radar.services.pipeline.orchestrator.SentimentPipeline",
        retrieval=retrieval_provider,
        classifier=classification_provider,
        reporter=sentiment_reporter,
        deduplicator=signal_deduplicator,
        budget=configs.budget_config,
        buffer_size=global_config.provided.stream_buffer_size,
    )

    opportunity_pipeline = providers.Factory(
        "mood_radar.services.pipeline.orchestrator.OpportunityPipeline",
        retrieval=retrieval_provider,
        agent=agent_client,
        deduplicator=signal_deduplicator,
        buffer_size=global_config.provided.stream_buffer_size,
    )

    analysis_service = providers.Factory(
        "mood_radar.services.pipeline.analysis.AnalysisService",
        retrieval=retrieval_provider,
        classifier=classification_provider,
        reporter=sentiment_reporter,
        deduplicator=signal_deduplicator,
    )

    run_registry = providers.Singleton(
        "mood_radar.services.pipeline.runs.RunRegistry",
    )


class ApplicationContainer(containers.DeclarativeContainer):
    """Root application container.

    Composes all sub-containers and provides the main entry point.
    """

    # Global Config singleton (environment variables)
    # Uses get_config() to ensure same instance across the app
    config = providers.Singleton(get_config)

    # Sub-containers
    infrastructure = providers.Container(
        InfrastructureContainer,
        global_config=config,
    )

    configs = providers.Container(
        ConfigContainer,
    )

    services = providers.Container(
        ServiceContainer,
        global_config=config,
        infrastructure=infrastructure,
        configs=configs,
    )

    # ============================================
    # Convenience accessors (shortcuts)
    # ============================================

    # Infrastructure
    redis = providers.Singleton(
        lambda client: client,
        client=infrastructure.redis_async_client,
    )

    http_client = providers.Singleton(
        lambda client: client,
        client=infrastructure.http_client,
    )

    snapshot_store = providers.Singleton(
        lambda store: store,
        store=infrastructure.snapshot_store,
    )

    # Services
    deduplicator = providers.Factory(
        lambda svc: svc,
        svc=services.signal_deduplicator,
    )

    sentiment_pipeline = providers.Factory(
        lambda svc: svc,
        svc=services.sentiment_pipeline,
    )

    opportunity_pipeline = providers.Factory(
        lambda svc: svc,
        svc=services.opportunity_pipeline,
    )

    analysis_service = providers.Factory(
        lambda svc: svc,
        svc=services.analysis_service,
    )

    run_registry = providers.Singleton(
        lambda svc: svc,
        svc=services.run_registry,
    )


def create_container() -> ApplicationContainer:
    """Create and configure the application container.

    Returns:
        Configured ApplicationContainer instance
    """
    return ApplicationContainer()


# Global container instance
container = create_container()


def get_container() -> ApplicationContainer:
    """Get the global container."""
    return container


# ============================================
# Testing Utilities
# ============================================


def override_redis(mock_redis: AsyncRedis):
    """Context manager to override Redis for testing.

    Usage:
        with override_redis(mock_redis):
            # All Redis access will use mock_redis
            ...
    """
    return container.infrastructure.redis_async_client.override(mock_redis)


def override_snapshot_store(store):
    """Context manager to override the snapshot store for testing."""
    return container.infrastructure.snapshot_store.override(store)


__all__ = [
    "ApplicationContainer",
    "ConfigContainer",
    "InfrastructureContainer",
    "ServiceContainer",
    "container",
    "create_container",
    "get_config",
    "get_container",
    "override_redis",
    "override_snapshot_store",
]
