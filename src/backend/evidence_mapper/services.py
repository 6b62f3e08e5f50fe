"""Builds every pipeline component once, at the process entry point."""
import logging
from dataclasses import dataclass

from .chat import GroundedChat
from .config import Settings
from .control_sync import ControlStatusSynchronizer
from .ingestion import IngestionPipeline
from .ollama_client import OllamaClient, OllamaEmbedder
from .retriever import PolicyMapper, Retriever
from .scheduler import ScheduleEngine
from .standards import StandardsImporter
from .storage import ArtifactFetcher
from .store import ComplianceStore
from .validator import EvidenceValidator
from .vector_index import VectorIndex

logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    store: ComplianceStore
    index: VectorIndex
    embedder: OllamaEmbedder
    llm: OllamaClient
    vision: OllamaClient
    synchronizer: ControlStatusSynchronizer
    ingestion: IngestionPipeline
    retriever: Retriever
    mapper: PolicyMapper
    validator: EvidenceValidator
    scheduler: ScheduleEngine
    standards: StandardsImporter
    chat: GroundedChat


def build_services(
    settings: Settings,
    store: ComplianceStore | None = None,
    embedder: OllamaEmbedder | None = None,
    llm: OllamaClient | None = None,
    vision: OllamaClient | None = None,
    fetcher: ArtifactFetcher | None = None,
) -> Services:
    options = {
        "temperature": settings.ollama_temperature,
        "top_p": settings.ollama_top_p,
        "num_predict": settings.ollama_num_predict,
        "seed": settings.ollama_seed,
    }
    store = store or ComplianceStore()
    embedder = embedder or OllamaEmbedder(
        settings.ollama_embed_model, settings.ollama_base_url, settings.ollama_timeout
    )
    llm = llm or OllamaClient(settings.ollama_model, settings.ollama_base_url, settings.ollama_timeout, options)
    vision = vision or OllamaClient(settings.vision_model, settings.ollama_base_url, settings.ollama_timeout, options)
    fetcher = fetcher or ArtifactFetcher(settings.artifact_timeout)

    index = VectorIndex(embedder)
    synchronizer = ControlStatusSynchronizer(store)
    retriever = Retriever(index)
    logger.info("Services ready (chat=%s, vision=%s, embed=%s)",
                settings.ollama_model, settings.vision_model, settings.ollama_embed_model)
    return Services(
        settings=settings,
        store=store,
        index=index,
        embedder=embedder,
        llm=llm,
        vision=vision,
        synchronizer=synchronizer,
        ingestion=IngestionPipeline(
            store, index, embedder,
            chunk_size=settings.chunk_size,
            chunk_overlap=settings.chunk_overlap,
            min_chunk_length=settings.min_chunk_length,
            min_extracted_length=settings.min_extracted_length,
        ),
        retriever=retriever,
        mapper=PolicyMapper(
            store, retriever, embedder, synchronizer,
            threshold=settings.policy_match_threshold, top_k=settings.policy_match_count,
        ),
        validator=EvidenceValidator(store, vision, fetcher, synchronizer),
        scheduler=ScheduleEngine(store),
        standards=StandardsImporter(store, embedder),
        chat=GroundedChat(
            embedder, retriever, llm,
            threshold=settings.chat_match_threshold, top_k=settings.chat_match_count,
        ),
    )
