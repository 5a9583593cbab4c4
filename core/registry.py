"""
Registries for builders and converter strategies.

Registries are constructed once at startup, filled through register(), then
sealed. After seal() they are read-only and safe to share between
concurrent conversions.
"""

from collections import deque
from typing import Dict, List, NamedTuple, Optional

from core.canonical_models import AIPlatform
from core.errors import UnsupportedConversion


class ConversionKey(NamedTuple):
    source: AIPlatform
    target: AIPlatform

    def __str__(self) -> str:
        return f"{self.source.value}->{self.target.value}"


class _SealableRegistry:
    def __init__(self):
        self._sealed = False

    @property
    def sealed(self) -> bool:
        return self._sealed

    def seal(self):
        """Freeze the registry; later register/unregister calls raise RuntimeError."""
        self._sealed = True

    def _check_writable(self):
        if self._sealed:
            raise RuntimeError(f"{type(self).__name__} is sealed")


class BuilderRegistry(_SealableRegistry):
    """Platform -> builder lookup."""

    def __init__(self):
        super().__init__()
        self._builders: Dict[AIPlatform, object] = {}

    def register(self, builder):
        """
        Register a builder.

        Raises:
            ValueError: If a builder for the platform is already registered
        """
        self._check_writable()
        if builder.platform in self._builders:
            raise ValueError(f"Builder for {builder.platform.value} already registered")
        self._builders[builder.platform] = builder

    def unregister(self, platform: AIPlatform) -> bool:
        self._check_writable()
        return self._builders.pop(platform, None) is not None

    def get_builder(self, platform: AIPlatform):
        """Builder for ``platform``, or None if not registered."""
        return self._builders.get(platform)

    def list_platforms(self) -> List[AIPlatform]:
        return list(self._builders.keys())

    def detect_platforms(self, root) -> List[AIPlatform]:
        """Platforms whose builder detects configuration under ``root``."""
        return [platform for platform, builder in self._builders.items() if builder.detect(root)]


class ConverterRegistry(_SealableRegistry):
    """(source, target) -> converter strategy lookup."""

    def __init__(self):
        super().__init__()
        self._strategies: Dict[ConversionKey, object] = {}

    def register(self, strategy):
        """
        Register a converter strategy under its platform pair.

        Raises:
            ValueError: If the pair is already registered
        """
        self._check_writable()
        key = ConversionKey(strategy.source_platform, strategy.target_platform)
        if key in self._strategies:
            raise ValueError(f"Converter for {key} already registered")
        self._strategies[key] = strategy

    def unregister(self, source: AIPlatform, target: AIPlatform) -> bool:
        self._check_writable()
        return self._strategies.pop(ConversionKey(source, target), None) is not None

    def get_strategy(self, source: AIPlatform, target: AIPlatform):
        """Converter for the pair, or None if not registered."""
        return self._strategies.get(ConversionKey(source, target))

    def require_strategy(self, source: AIPlatform, target: AIPlatform):
        """
        Converter for the pair.

        Raises:
            UnsupportedConversion: If no converter is registered for the pair
        """
        strategy = self.get_strategy(source, target)
        if strategy is None:
            raise UnsupportedConversion(source.value, target.value)
        return strategy

    def has_converter(self, source: AIPlatform, target: AIPlatform) -> bool:
        strategy = self.get_strategy(source, target)
        return strategy is not None and strategy.can_convert()

    def list_conversions(self) -> List[ConversionKey]:
        return sorted(self._strategies.keys(), key=lambda key: (key.source.value, key.target.value))

    def get_all_strategies(self) -> List[object]:
        return [self._strategies[key] for key in self.list_conversions()]

    def get_conversion_chain(self, source: AIPlatform, target: AIPlatform) -> Optional[List[object]]:
        """
        Shortest sequence of converters from ``source`` to ``target``.

        A registered direct pair is always returned on its own. Otherwise a
        breadth-first search over usable converters finds a multi-hop path.

        Returns:
            List of strategies (empty when source == target), or None if
            the target cannot be reached
        """
        if source == target:
            return []
        if self.has_converter(source, target):
            return [self._strategies[ConversionKey(source, target)]]

        previous: Dict[AIPlatform, ConversionKey] = {}
        queue = deque([source])
        visited = {source}
        while queue:
            current = queue.popleft()
            for key in self.list_conversions():
                if key.source != current or key.target in visited:
                    continue
                if not self._strategies[key].can_convert():
                    continue
                visited.add(key.target)
                previous[key.target] = key
                if key.target == target:
                    chain = []
                    node = target
                    while node != source:
                        step = previous[node]
                        chain.append(self._strategies[step])
                        node = step.source
                    return list(reversed(chain))
                queue.append(key.target)
        return None
