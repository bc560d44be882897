# units/unit_converter.py

"""
Unit Converter - per-dimension conversion graph with path discovery.

This converter is responsible for:
- Holding one conversion graph per dimension (nodes: unprefixed unit symbols)
- Bootstrapping the graph from the unit and conversion catalogs
- Discovering the lowest-error path between two units and memoizing it
- Handling prefixes by converting between unprefixed units and rescaling
- Expanding derived units into base units and merging like-dimension terms

This converter MUST NOT:
- Convert across dimensions
- Guess a factor when no path exists (get_conversion returns None)
- Persist anything; every cache is rebuilt from the catalogs

GLOBAL INVARIANTS (ENFORCED):
1) At most one converter per normalized dimension code in a registry
2) Stored edges only ever grow, except when add_conversion() invalidates discovered
   paths here and SI-reduction edges in dependent converters
3) A discovered path is published as one new edge under the converter lock
4) Every returned conversion has a non-zero multiplier

Path scoring:
Each stored edge may be walked forward (weight: its total_absolute_error) or
backward (weight: the error of its inverse). The search returns the walk with
the lowest summed weight; ties go to fewer hops, then to the lexically
smaller sequence of node symbols.
"""

import heapq
import itertools
import logging
import threading
from typing import Optional, List, Dict, Tuple, Union

import dimension_utils
from affine_conversion import AffineConversion
from compound_unit import CompoundUnit, UnitTerm, UnitInterface
from conversion_catalog import ConversionCatalog
from conversion_errors import InvalidUnitError, NoPathFoundError, ExpansionDepthError
from converter_settings import ConverterSettings, get_settings
from tracked_float import TrackedFloat, Number
from unit_catalog import UnitCatalog, UnitDefinition

logger = logging.getLogger(__name__)

UnitLike = Union[str, UnitInterface]
Value = Union[TrackedFloat, Number]
EdgeKey = Tuple[str, str]
Step = Tuple[AffineConversion, bool]


# ==================== REGISTRY ====================

class ConverterRegistry:
    """
    Keyed store of converters, one per dimension, sharing one pair of catalogs.

    The module keeps a default registry for UnitConverter.get_by_dimension();
    tests and embedders can build isolated registries with their own catalogs.
    """

    def __init__(self, unit_catalog: Optional[UnitCatalog] = None, conversion_catalog: Optional[ConversionCatalog] = None, settings: Optional[ConverterSettings] = None):
        self.unit_catalog = unit_catalog if unit_catalog is not None else UnitCatalog()
        self.conversion_catalog = conversion_catalog if conversion_catalog is not None else ConversionCatalog()
        self._settings = settings
        self._converters: Dict[str, "UnitConverter"] = {}
        self._lock = threading.Lock()

    @property
    def settings(self) -> ConverterSettings:
        return self._settings if self._settings is not None else get_settings()

    def get_by_dimension(self, dimension: str) -> "UnitConverter":
        """
        Return the converter for a dimension, creating and bootstrapping it on first use.

        Raises:
            InvalidDimensionError: If the dimension code is malformed
        """
        code = dimension_utils.normalize(dimension)
        converter = self._converters.get(code)
        if converter is None:
            with self._lock:
                converter = self._converters.get(code)
                if converter is None:
                    converter = UnitConverter(code, self)
                    self._converters[code] = converter
                    logger.info(f"Created converter for dimension '{code}' ({dimension_utils.describe(code)})")
        # Bootstrap outside the registry lock; it may need other converters
        converter._ensure_loaded()
        return converter

    def clear_all(self) -> None:
        with self._lock:
            count = len(self._converters)
            self._converters = {}
        logger.info(f"Cleared {count} converter(s)")

    @property
    def dimensions(self) -> List[str]:
        return sorted(self._converters)

    def refresh_dependents(self, dimension: str) -> None:
        """
        Rebuild derived edges of every converter whose units reduce through the
        given base dimension (ft -> m feeds ft2 -> m2 in L2).
        """
        if not dimension_utils.is_base_dimension(dimension):
            return
        with self._lock:
            converters = list(self._converters.values())
        for converter in converters:
            if converter.dimension != dimension and dimension in dimension_utils.explode(converter.dimension):
                converter._refresh_reduced()

    def parse_unit(self, unit: UnitLike) -> CompoundUnit:
        return CompoundUnit.of(unit, self.unit_catalog)

    # ==================== EXPANSION / MERGING ====================

    def expand(self, value: Value, unit: UnitLike) -> Tuple[TrackedFloat, CompoundUnit]:
        """
        Rewrite every expandable term in terms of its expansion, recursively, then merge.

        Example: expand(1, 'kN') -> (1000, 'kg*m*s-2')

        Returns:
            (value, unit) with value scaled so both describe the same quantity

        Raises:
            ExpansionDepthError: If expansion does not terminate within max_expansion_depth
        """
        value = TrackedFloat.of(value)
        original = self.parse_unit(unit)
        current = original
        max_depth = self.settings.max_expansion_depth

        for _ in range(max_depth + 1):
            expanded_terms: List[UnitTerm] = []
            changed = False
            for term in current.terms:
                if term.unit.has_expansion:
                    factor = TrackedFloat.of(term.unit.expansion_value)
                    expansion_symbol = term.unit.expansion_unit_symbol
                else:
                    indirect = self._indirect_expansion(term.unit)
                    if indirect is None:
                        expanded_terms.append(term)
                        continue
                    factor, expansion_symbol = indirect
                changed = True
                expansion = self.parse_unit(expansion_symbol)
                factor = factor.mul(TrackedFloat.of(term.prefix_multiplier))
                value = value.mul(factor.pow(term.exponent))
                expanded_terms.extend(expansion.pow(term.exponent).terms)
            if not changed:
                return self.merge(value, current)
            current = CompoundUnit(expanded_terms)

        raise ExpansionDepthError(original.ascii_symbol, max_depth)

    def _indirect_expansion(self, unit: UnitDefinition) -> Optional[Tuple[TrackedFloat, str]]:
        """
        Expansion borrowed from an expandable unit of the same dimension (Btu -> J -> N*m).

        Candidates are tried in catalog order; the first one reachable through
        an offset-free conversion wins.

        Returns:
            (factor from unit to the borrowed expansion, expansion symbol), or None
        """
        candidates = [
            u for u in self.unit_catalog.get_expandable()
            if u.dimension == unit.dimension and u.ascii_symbol != unit.ascii_symbol
        ]
        if not candidates:
            return None
        converter = self.get_by_dimension(unit.dimension)
        for candidate in candidates:
            conversion = converter.get_conversion(unit.ascii_symbol, candidate.ascii_symbol)
            if conversion is None or conversion.has_offset:
                continue
            logger.debug(f"Expanding '{unit.ascii_symbol}' through '{candidate.ascii_symbol}'")
            factor = conversion.multiplier.mul(TrackedFloat.of(candidate.expansion_value))
            return factor, candidate.expansion_unit_symbol
        return None

    def merge(self, value: Value, unit: UnitLike) -> Tuple[TrackedFloat, CompoundUnit]:
        """
        Combine terms that share a dimension into the first such term.

        Example: merge(1, 'm*ft') -> (0.3048, 'm2')

        Terms that cannot be converted into the first term of their dimension
        (no path, or an offset conversion such as degC -> K) stay separate.
        """
        value = TrackedFloat.of(value)
        compound = self.parse_unit(unit)

        canonical: Dict[str, UnitTerm] = {}
        exponents: Dict[str, int] = {}
        bases: Dict[str, UnitTerm] = {}

        for term in compound.terms:
            dimension = term.unit.dimension
            first = canonical.get(dimension)
            if first is None:
                canonical[dimension] = term.unexponentiated()
            elif first.key != term.key:
                conversion = self.get_by_dimension(dimension).get_conversion(
                    CompoundUnit([term.unexponentiated()]),
                    CompoundUnit([first])
                )
                if conversion is not None and not conversion.has_offset:
                    value = value.mul(conversion.multiplier.pow(term.exponent))
                    exponents[first.key] += term.exponent
                    continue
                logger.warning(f"Cannot merge '{term.key}' into '{first.key}' while merging '{compound.ascii_symbol}'; keeping both")
            bases.setdefault(term.key, term.unexponentiated())
            exponents[term.key] = exponents.get(term.key, 0) + term.exponent

        merged = CompoundUnit(
            bases[key].with_exponent(exponent)
            for key, exponent in exponents.items()
            if exponent != 0
        )
        return value, merged


# ==================== CONVERTER ====================

class UnitConverter:
    """Conversion graph for one dimension"""

    def __init__(self, dimension: str, registry: ConverterRegistry):
        self.dimension = dimension_utils.normalize(dimension)
        self.registry = registry
        self._lock = threading.RLock()
        self._loaded = False
        self._bootstrapping = False
        self._units: Dict[str, CompoundUnit] = {}
        self._conversions: Dict[EdgeKey, AffineConversion] = {}
        self._discovered: set = set()
        self._reduced: set = set()
        self._prefixed: Dict[EdgeKey, AffineConversion] = {}

    # ==================== MULTITON ACCESS ====================

    @classmethod
    def get_by_dimension(cls, dimension: str) -> "UnitConverter":
        return _default_registry.get_by_dimension(dimension)

    @classmethod
    def clear_all(cls) -> None:
        _default_registry.clear_all()

    # ==================== BOOTSTRAP ====================

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        with self._lock:
            # Re-entrant calls from our own bootstrap see a partial graph, which is fine
            if self._loaded or self._bootstrapping:
                return
            self._bootstrapping = True
            try:
                self._bootstrap()
                self._loaded = True
            finally:
                self._bootstrapping = False

    def _bootstrap(self) -> None:
        for definition in self.registry.unit_catalog.get_by_dimension(self.dimension):
            self._register_unit(CompoundUnit([UnitTerm(definition)]))

        for definition in self.registry.conversion_catalog.get_by_dimension(self.dimension):
            conversion = AffineConversion.from_definition(definition)
            self._store_edge(self._validated(definition.src_unit), self._validated(definition.dest_unit), conversion)

        logger.info(
            f"Converter '{self.dimension}' bootstrapped: {len(self._units)} units, {len(self._conversions)} conversions"
        )

    def _store_edge(self, src: CompoundUnit, dest: CompoundUnit, conversion: AffineConversion) -> AffineConversion:
        """Store an edge on unprefixed nodes (in -> mm is kept as in -> m)."""
        src_base, src_prefix = src.strip_prefixes()
        dest_base, dest_prefix = dest.strip_prefixes()
        self._register_unit(src_base)
        self._register_unit(dest_base)
        if src_prefix != 1 or dest_prefix != 1:
            conversion = conversion.rescale(
                src_base.ascii_symbol,
                dest_base.ascii_symbol,
                TrackedFloat.of(src_prefix).inv(),
                TrackedFloat.of(dest_prefix).inv()
            )
        self._conversions[(conversion.src_unit, conversion.dest_unit)] = conversion
        logger.debug(f"[{self.dimension}] stored {conversion}")
        return conversion

    # ==================== UNITS ====================

    def _validated(self, unit: UnitLike) -> CompoundUnit:
        compound = self.registry.parse_unit(unit)
        if compound.dimension != self.dimension:
            symbol = unit if isinstance(unit, str) else compound.ascii_symbol
            raise InvalidUnitError(symbol, self.dimension, compound.dimension)
        return compound

    def add_unit(self, unit: UnitLike) -> CompoundUnit:
        """
        Make a unit reachable by path discovery.

        Registers the unprefixed unit, its expanded form (with an edge carrying
        the expansion factor) and, for compound or exponentiated units, its SI
        base form (with an edge derived from the single-letter converters).

        Returns:
            The unprefixed unit as stored in the graph

        Raises:
            InvalidUnitError: If the unit is not of this converter's dimension
        """
        compound = self._validated(unit)
        self._ensure_loaded()
        base, _ = compound.strip_prefixes()
        with self._lock:
            return self._register_unit(base)

    def _register_unit(self, unit: CompoundUnit) -> CompoundUnit:
        base, _ = unit.strip_prefixes()
        symbol = base.ascii_symbol
        if symbol in self._units:
            return base
        self._units[symbol] = base

        if any(term.unit.has_expansion for term in base.terms):
            value, expanded = self.registry.expand(1, base)
            expanded_base, prefix = expanded.strip_prefixes()
            if expanded_base.ascii_symbol != symbol:
                self._register_unit(expanded_base)
                self._insert(AffineConversion(symbol, expanded_base.ascii_symbol, value.mul(TrackedFloat.of(prefix))))

        reduced = self._reduce_to_si(base)
        if reduced is not None:
            factor, si_unit = reduced
            if si_unit.ascii_symbol != symbol:
                self._register_unit(si_unit)
                self._insert(AffineConversion(symbol, si_unit.ascii_symbol, factor))
                self._reduced.add((symbol, si_unit.ascii_symbol))
        return base

    def _reduce_to_si(self, unit: CompoundUnit) -> Optional[Tuple[TrackedFloat, CompoundUnit]]:
        """
        Factor and SI form of a product of base-dimension units (ft2 -> m2, mi*h-1 -> m*s-1).

        Returns None for atomic units of a base dimension (catalog edges cover
        those) and whenever a term has no offset-free path to its SI unit.
        """
        if unit.is_atomic and dimension_utils.is_base_dimension(self.dimension):
            return None
        if not unit.terms:
            return None

        factor = TrackedFloat(1, 0)
        terms: List[UnitTerm] = []
        for term in unit.terms:
            letter = term.unit.dimension
            si_symbol = dimension_utils.SI_BASE_UNITS.get(letter)
            if si_symbol is None:
                return None
            si_definition = self.registry.unit_catalog.get(si_symbol)
            if si_definition is None:
                return None
            if term.unit.ascii_symbol != si_symbol:
                conversion = self.registry.get_by_dimension(letter).get_conversion(term.unit.ascii_symbol, si_symbol)
                if conversion is None or conversion.has_offset:
                    return None
                factor = factor.mul(conversion.multiplier.pow(term.exponent))
            terms.append(UnitTerm(si_definition, None, term.exponent))
        return factor, CompoundUnit(terms).sorted_by_dimension()

    def _insert(self, conversion: AffineConversion) -> None:
        key = (conversion.src_unit, conversion.dest_unit)
        if key not in self._conversions:
            self._conversions[key] = conversion
            logger.debug(f"[{self.dimension}] stored {conversion}")

    def add_conversion(self, src_unit: UnitLike, dest_unit: UnitLike, multiplier: Value, offset: Value = 0) -> AffineConversion:
        """
        Register a conversion at runtime.

        Previously discovered paths are dropped so later searches can use the new edge.

        Raises:
            InvalidUnitError: If either unit is not of this dimension
            ZeroMultiplierError: If the multiplier is zero
        """
        src = self._validated(src_unit)
        dest = self._validated(dest_unit)
        conversion = AffineConversion(src, dest, multiplier, offset)
        self._ensure_loaded()
        with self._lock:
            self._drop_discovered()
            stored = self._store_edge(src, dest, conversion)
        # Outside our lock: compound converters take their own lock first
        self.registry.refresh_dependents(self.dimension)
        return stored

    def _drop_discovered(self) -> None:
        for key in self._discovered:
            self._conversions.pop(key, None)
        self._discovered = set()
        self._prefixed = {}

    def _refresh_reduced(self) -> None:
        """Recompute SI-reduction edges after a base-dimension converter changed."""
        with self._lock:
            self._drop_discovered()
            for src, dest in sorted(self._reduced):
                self._conversions.pop((src, dest), None)
                reduced = self._reduce_to_si(self._units[src])
                if reduced is None or reduced[1].ascii_symbol != dest:
                    self._reduced.discard((src, dest))
                    continue
                self._insert(AffineConversion(src, dest, reduced[0]))
            logger.info(f"[{self.dimension}] refreshed {len(self._reduced)} reduced conversion(s)")

    # ==================== LOOKUP ====================

    def get_conversion(self, src_unit: UnitLike, dest_unit: UnitLike) -> Optional[AffineConversion]:
        """
        Conversion from src_unit to dest_unit, discovering a path if needed.

        Args:
            src_unit: Symbol or unit object, may be prefixed ('km')
            dest_unit: Symbol or unit object, may be prefixed

        Returns:
            AffineConversion, or None when no path exists

        Raises:
            InvalidUnitError: If either unit is not of this dimension
        """
        src = self._validated(src_unit)
        dest = self._validated(dest_unit)
        key = (src.ascii_symbol, dest.ascii_symbol)
        if key[0] == key[1]:
            return AffineConversion.identity(key[0])

        cached = self._conversions.get(key) or self._prefixed.get(key)
        if cached is not None:
            return cached

        self._ensure_loaded()
        with self._lock:
            cached = self._conversions.get(key) or self._prefixed.get(key)
            if cached is not None:
                return cached

            src_base, src_prefix = src.strip_prefixes()
            dest_base, dest_prefix = dest.strip_prefixes()
            self._register_unit(src_base)
            self._register_unit(dest_base)

            base_key = (src_base.ascii_symbol, dest_base.ascii_symbol)
            if base_key[0] == base_key[1]:
                base = AffineConversion.identity(base_key[0])
            else:
                base = self._conversions.get(base_key) or self._discover(*base_key)
            if base is None:
                return None
            if base_key == key:
                return base

            conversion = base.rescale(key[0], key[1], src_prefix, dest_prefix)
            self._prefixed[key] = conversion
            return conversion

    def get_conversion_factor(self, src_unit: UnitLike, dest_unit: UnitLike) -> Optional[float]:
        conversion = self.get_conversion(src_unit, dest_unit)
        return conversion.multiplier.value if conversion is not None else None

    def convert_tracked(self, value: Value, src_unit: UnitLike, dest_unit: UnitLike) -> TrackedFloat:
        """
        Convert and keep the error estimate.

        Raises:
            InvalidUnitError: If either unit is not of this dimension
            NoPathFoundError: If no conversion path exists
        """
        src = self._validated(src_unit)
        dest = self._validated(dest_unit)
        conversion = self.get_conversion(src, dest)
        if conversion is None:
            raise NoPathFoundError(src.ascii_symbol, dest.ascii_symbol, self.dimension)
        return conversion.apply(value)

    def convert(self, value: Value, src_unit: UnitLike, dest_unit: UnitLike) -> float:
        return self.convert_tracked(value, src_unit, dest_unit).value

    def expand(self, value: Value, unit: UnitLike) -> Tuple[TrackedFloat, CompoundUnit]:
        return self.registry.expand(value, unit)

    def merge(self, value: Value, unit: UnitLike) -> Tuple[TrackedFloat, CompoundUnit]:
        return self.registry.merge(value, unit)

    # ==================== PATH DISCOVERY ====================

    def _discover(self, src: str, dest: str) -> Optional[AffineConversion]:
        edges = dict(self._conversions)
        steps = self._find_path(src, dest, edges)
        if steps is None:
            logger.debug(f"[{self.dimension}] no path from '{src}' to '{dest}'")
            return None

        conversion = compose_path(steps)
        self._conversions[(src, dest)] = conversion
        self._discovered.add((src, dest))

        log = logger.info if self.registry.settings.log_discovered_paths else logger.debug
        route = " -> ".join([src] + [c.dest_unit if forward else c.src_unit for c, forward in steps])
        log(f"[{self.dimension}] discovered {conversion} via {route} (error {conversion.total_absolute_error:.3g})")
        return conversion

    def _find_path(self, src: str, dest: str, edges: Dict[EdgeKey, AffineConversion]) -> Optional[List[Step]]:
        adjacency: Dict[str, List[Tuple[str, EdgeKey, bool]]] = {}
        for a, b in edges:
            adjacency.setdefault(a, []).append((b, (a, b), True))
            adjacency.setdefault(b, []).append((a, (a, b), False))
        if src not in adjacency or dest not in adjacency:
            return None

        max_hops = self.registry.settings.max_path_hops
        inverse_errors: Dict[EdgeKey, float] = {}
        counter = itertools.count()
        heap = [(0.0, 0, (src,), next(counter), src, ())]
        settled = set()

        while heap:
            cost, hops, path, _, node, steps = heapq.heappop(heap)
            if node in settled:
                continue
            settled.add(node)
            if node == dest:
                return list(steps)
            if hops >= max_hops:
                continue
            for neighbour, key, forward in adjacency[node]:
                if neighbour in settled:
                    continue
                conversion = edges[key]
                if forward:
                    weight = conversion.total_absolute_error
                else:
                    if key not in inverse_errors:
                        inverse_errors[key] = conversion.invert().total_absolute_error
                    weight = inverse_errors[key]
                heapq.heappush(heap, (
                    cost + weight,
                    hops + 1,
                    path + (neighbour,),
                    next(counter),
                    neighbour,
                    steps + ((conversion, forward),)
                ))
        return None

    # ==================== MATRIX ====================

    def complete_matrix(self) -> int:
        """Discover a conversion between every ordered pair of registered units. Returns the number found."""
        self._ensure_loaded()
        found = 0
        symbols = sorted(self._units)
        for src in symbols:
            for dest in symbols:
                if src != dest and self.get_conversion(src, dest) is not None:
                    found += 1
        logger.info(f"[{self.dimension}] matrix completed: {found} of {len(symbols) * (len(symbols) - 1)} pairs")
        return found

    def is_matrix_complete(self) -> bool:
        symbols = list(self._units)
        return all(
            (src, dest) in self._conversions
            for src in symbols
            for dest in symbols
            if src != dest
        )

    def format_matrix(self) -> str:
        return "\n".join(str(c) for _, c in sorted(self._conversions.items()))

    @property
    def units(self) -> List[str]:
        return sorted(self._units)

    @property
    def conversions(self) -> Dict[EdgeKey, AffineConversion]:
        return dict(self._conversions)

    def __repr__(self) -> str:
        return f"UnitConverter({self.dimension!r}, units={len(self._units)}, conversions={len(self._conversions)})"


# ==================== PATH COMPOSITION ====================

def _join(first: AffineConversion, first_forward: bool, second: AffineConversion, second_forward: bool) -> AffineConversion:
    """Combine two edges meeting at a node with the operator matching their directions."""
    if first_forward and second_forward:
        return first.combine_sequential(second)
    if first_forward:
        return first.combine_convergent(second)
    if second_forward:
        return first.combine_divergent(second)
    return first.combine_opposite(second)


def compose_path(steps: List[Step]) -> AffineConversion:
    """
    Fold a walk into a single conversion.

    Each step is (stored edge, walked forward?). Reversed edges are never
    inverted up front; the combine operator absorbs the direction.
    """
    first, first_forward = steps[0]
    if len(steps) == 1:
        return first if first_forward else first.invert()
    second, second_forward = steps[1]
    result = _join(first, first_forward, second, second_forward)
    for conversion, forward in steps[2:]:
        result = result.combine_sequential(conversion) if forward else result.combine_convergent(conversion)
    return result


# ==================== MODULE API ====================

_default_registry = ConverterRegistry()


def get_conversion_factor(dimension: str, src_unit: UnitLike, dest_unit: UnitLike) -> Optional[float]:
    return _default_registry.get_by_dimension(dimension).get_conversion_factor(src_unit, dest_unit)


def convert(value: Value, src_unit: UnitLike, dest_unit: UnitLike) -> float:
    """
    Convert using the dimension of the source unit.

    Raises:
        UnknownUnitError: If a symbol is not in the catalog
        InvalidUnitError: If dest_unit has a different dimension
        NoPathFoundError: If no conversion path exists
    """
    src = _default_registry.parse_unit(src_unit)
    return _default_registry.get_by_dimension(src.dimension).convert(value, src, dest_unit)
