"""Copilot chat grounded on the policy library (FAISS retrieval + Ollama)"""
import json
import logging
import re

from pydantic import BaseModel

from ..ollama_client import OllamaClient, OllamaEmbedder
from ..prompts import COPILOT_SYSTEM, NO_POLICY_CONTEXT
from ..retriever import RetrievedChunk, Retriever

logger = logging.getLogger(__name__)

MAX_USED_CONTEXT = 3


class CopilotContext(BaseModel):
    assessment_title: str = "Unknown Assessment"
    standard: str = "Unknown Standard"
    visible_controls: list[dict] = []


class GroundedChat:
    """Stricter threshold than policy mapping: a weak match only dilutes an answer."""

    def __init__(
        self,
        embedder: OllamaEmbedder,
        retriever: Retriever,
        llm: OllamaClient,
        threshold: float = 0.5,
        top_k: int = 4,
    ):
        self.embedder = embedder
        self.retriever = retriever
        self.llm = llm
        self.threshold = threshold
        self.top_k = top_k

    def ask(self, question: str, context: CopilotContext) -> dict:
        query = self.embedder.try_embed(question).unwrap()
        docs: list[RetrievedChunk] = self.retriever.retrieve(query, self.threshold, self.top_k)
        logger.info("Copilot question grounded on %d policy chunks", len(docs))

        system = COPILOT_SYSTEM.format(
            assessment_title=context.assessment_title,
            standard=context.standard,
            visible_controls=json.dumps(context.visible_controls, indent=2),
            policy_context="\n\n".join(d.content for d in docs) or NO_POLICY_CONTEXT,
        )
        answer = self.llm.complete(system, [{"role": "user", "content": question}]).unwrap()
        # Strip <think>...</think> reasoning tags from deepseek-r1
        answer = re.sub(r"<think>.*?</think>\s*", "", answer, flags=re.DOTALL).strip()
        return {"answer": answer, "context": [d.content for d in docs[:MAX_USED_CONTEXT]]}
