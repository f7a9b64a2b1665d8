import logging
from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from reqchain.exceptions import AlreadyExistsError, IndexOutOfRangeError, NotFoundError, ValidationError
from reqchain.models import RequestTemplate, validate_template

logger = logging.getLogger(__name__)


class Chain(BaseModel):
    """A named, ordered sequence of request templates.

    Chains are immutable; the registry swaps in a new instance on every edit.
    """

    name: str = Field(description="Chain name, unique within a registry.")
    steps: tuple[RequestTemplate, ...] = Field(default=())
    model_config = ConfigDict(frozen=True)

    def __len__(self) -> int:
        return len(self.steps)


TemplateLike = RequestTemplate | Mapping[str, Any]


class ChainRegistry:
    """In-memory chain definitions keyed by name.

    Step indices are 1-based. Listing order is creation order.
    """

    def __init__(self):
        self._chains: dict[str, Chain] = {}

    def __contains__(self, name: str) -> bool:
        return name in self._chains

    def __len__(self) -> int:
        return len(self._chains)

    def create(self, name: str) -> Chain:
        if not name or not name.strip():
            raise ValidationError("Chain name cannot be empty")
        if name in self._chains:
            raise AlreadyExistsError(f"Chain '{name}' already exists")

        chain = Chain(name=name)
        self._chains[name] = chain
        logger.info(f"Created request chain '{name}'")
        return chain

    def get(self, name: str) -> Chain:
        try:
            return self._chains[name]
        except KeyError:
            raise NotFoundError(f"Chain '{name}' not found") from None

    def delete(self, name: str) -> None:
        self.get(name)
        del self._chains[name]
        logger.info(f"Deleted request chain '{name}'")

    def list(self) -> list[str]:
        return list(self._chains)

    def append_step(self, name: str, template: TemplateLike) -> int:
        """Append a step and return its 1-based index."""
        chain = self.get(name)
        steps = (*chain.steps, validate_template(template))
        self._store(chain, steps)
        return len(steps)

    def get_step(self, name: str, index: int) -> RequestTemplate:
        chain = self.get(name)
        self._check_index(chain, index)
        return chain.steps[index - 1]

    def remove_step(self, name: str, index: int) -> RequestTemplate:
        chain = self.get(name)
        self._check_index(chain, index)
        steps = list(chain.steps)
        removed = steps.pop(index - 1)
        self._store(chain, tuple(steps))
        return removed

    def replace_step(self, name: str, index: int, template: TemplateLike) -> RequestTemplate:
        """Replace the step at ``index`` and return the previous template."""
        chain = self.get(name)
        self._check_index(chain, index)
        steps = list(chain.steps)
        previous = steps[index - 1]
        steps[index - 1] = validate_template(template)
        self._store(chain, tuple(steps))
        return previous

    def _store(self, chain: Chain, steps: tuple[RequestTemplate, ...]) -> None:
        # steps are validated by the caller
        self._chains[chain.name] = chain.model_copy(update={"steps": steps})

    @staticmethod
    def _check_index(chain: Chain, index: int) -> None:
        if not 1 <= index <= len(chain.steps):
            raise IndexOutOfRangeError(f"Step {index} is out of range for chain '{chain.name}' with {len(chain.steps)} steps")
