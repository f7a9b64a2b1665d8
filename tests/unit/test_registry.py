import pydantic
import pytest

from reqchain.exceptions import AlreadyExistsError, IndexOutOfRangeError, NotFoundError, ValidationError
from reqchain.models import RequestTemplate
from reqchain.registry import ChainRegistry


def step(path: str, method: str = "GET") -> dict:
    return {"url": f"https://api.test{path}", "method": method}


@pytest.fixture
def two_step_registry() -> ChainRegistry:
    registry = ChainRegistry()
    registry.create("x")
    registry.append_step("x", step("/first"))
    registry.append_step("x", step("/second"))
    return registry


class TestChains:
    def test_create_and_get(self):
        registry = ChainRegistry()
        chain = registry.create("login")

        assert registry.get("login") is chain
        assert len(chain) == 0
        assert "login" in registry

    def test_duplicate_name(self):
        registry = ChainRegistry()
        registry.create("login")

        with pytest.raises(AlreadyExistsError):
            registry.create("login")

    @pytest.mark.parametrize("name", ["", "   "])
    def test_empty_name(self, name: str):
        with pytest.raises(ValidationError):
            ChainRegistry().create(name)

    def test_get_missing(self):
        with pytest.raises(NotFoundError):
            ChainRegistry().get("nope")

    def test_list_in_creation_order(self):
        registry = ChainRegistry()
        for name in ["zeta", "alpha", "mid"]:
            registry.create(name)

        assert registry.list() == ["zeta", "alpha", "mid"]

    def test_delete(self, two_step_registry: ChainRegistry):
        two_step_registry.delete("x")

        assert "x" not in two_step_registry
        assert len(two_step_registry) == 0
        with pytest.raises(NotFoundError):
            two_step_registry.delete("x")


class TestSteps:
    def test_append_returns_index(self):
        registry = ChainRegistry()
        registry.create("x")

        assert registry.append_step("x", step("/a")) == 1
        assert registry.append_step("x", RequestTemplate(url="https://api.test/b", method="POST")) == 2

    def test_append_to_missing_chain(self):
        with pytest.raises(NotFoundError):
            ChainRegistry().append_step("nope", step("/a"))

    def test_append_invalid_template(self):
        registry = ChainRegistry()
        registry.create("x")

        with pytest.raises(ValidationError):
            registry.append_step("x", {"url": "https://api.test"})
        with pytest.raises(ValidationError):
            registry.append_step("x", {"method": "GET"})

        assert len(registry.get("x")) == 0

    def test_get_step(self, two_step_registry: ChainRegistry):
        assert two_step_registry.get_step("x", 2).url == "https://api.test/second"

    @pytest.mark.parametrize("index", [0, 3, 5, -1])
    def test_remove_out_of_range(self, two_step_registry: ChainRegistry, index: int):
        with pytest.raises(IndexOutOfRangeError):
            two_step_registry.remove_step("x", index)

        assert len(two_step_registry.get("x")) == 2

    def test_remove_keeps_order(self):
        registry = ChainRegistry()
        registry.create("x")
        for path in ["/a", "/b", "/c"]:
            registry.append_step("x", step(path))

        removed = registry.remove_step("x", 2)

        assert removed.url == "https://api.test/b"
        assert [s.url for s in registry.get("x").steps] == ["https://api.test/a", "https://api.test/c"]

    def test_replace_step(self, two_step_registry: ChainRegistry):
        previous = two_step_registry.replace_step("x", 1, step("/replaced", "DELETE"))

        assert previous.url == "https://api.test/first"
        assert two_step_registry.get_step("x", 1).url == "https://api.test/replaced"
        assert two_step_registry.get_step("x", 2).url == "https://api.test/second"

    def test_steps_cannot_be_edited_outside_registry(self, two_step_registry: ChainRegistry):
        chain = two_step_registry.get("x")

        with pytest.raises(AttributeError):
            chain.steps.append({"url": "not a url"})
        with pytest.raises(pydantic.ValidationError):
            chain.steps = ()

        assert len(two_step_registry.get("x")) == 2

    def test_earlier_chain_instance_unchanged_by_edits(self, two_step_registry: ChainRegistry):
        before = two_step_registry.get("x")

        two_step_registry.append_step("x", step("/third"))

        assert len(before) == 2
        assert len(two_step_registry.get("x")) == 3

    def test_replace_out_of_range(self, two_step_registry: ChainRegistry):
        with pytest.raises(IndexOutOfRangeError):
            two_step_registry.replace_step("x", 3, step("/c"))
