from insect_worker.infrastructure.llm.gemini.classifier import GeminiInsectClassifier

__all__ = ["GeminiInsectClassifier"]
