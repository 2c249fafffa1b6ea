"""Semantic routing of rewrite intents to model backends."""

import logging

from ..errors import InvalidRequestError
from ..pipeline.models import Intent, ModelSelection, ProviderKind

logger = logging.getLogger(__name__)

# Mostly mechanical tasks tolerate a weaker, cheaper model
LOW_COST_INTENTS = frozenset({Intent.SIMPLIFY, Intent.GRAMMAR})


class ModelRouter:
    """Chooses a backend by task category, balancing cost against reasoning need."""

    def __init__(self, low_cost_model: str, high_reasoning_model: str):
        """
        Initialize the model router.

        Args:
            low_cost_model: Model identifier for the low-cost provider
            high_reasoning_model: Model identifier for the high-reasoning provider
        """
        self._selections = {}
        for intent in Intent:
            if intent in LOW_COST_INTENTS:
                selection = ModelSelection(ProviderKind.LOW_COST, low_cost_model)
            else:
                selection = ModelSelection(ProviderKind.HIGH_REASONING, high_reasoning_model)
            self._selections[intent] = selection

    def select(self, intent: Intent) -> ModelSelection:
        """
        Select the backend for an intent.

        Args:
            intent: Rewrite intent

        Returns:
            ModelSelection for the intent

        Raises:
            InvalidRequestError: If the intent is not recognized
        """
        try:
            selection = self._selections[Intent(intent)]
        except ValueError:
            raise InvalidRequestError(f"Invalid intent: {intent}") from None

        logger.debug(f"Routing {intent} to {selection.provider_kind.value}: {selection.model_identifier}")
        return selection
