"""
MacroTable
==========

Holds every macro the engine knows about: the builtins and the templates
registered through ``define``.

Besides lookup, the table can describe how user macros refer to each other
as a directed graph (NetworkX ``DiGraph``): an edge ``a -> b`` means the
template of ``a`` mentions the name of macro ``b``.  The graph is used to
spot definitions that can reach themselves, whose expansion may never
terminate.  Quoting inside templates is ignored by the scan, so the graph
over-approximates what an expansion will actually call.
"""
from __future__ import annotations

import logging
import re
from collections import defaultdict
from typing import Any, Dict, Iterator, List, Optional, Set

import networkx as nx

from ..errors import BuiltinArgumentError
from ..models import BUILTIN_DEFINE, MacroDefinition

logger = logging.getLogger(__name__)

#: Names implemented by the controller rather than by a template
BUILTIN_NAMES = (BUILTIN_DEFINE,)

_NAME_RE = re.compile(r"[A-Za-z_]+")


class MacroTable:
    """
    Mapping of macro name to :class:`~m4_stream.models.MacroDefinition`.

    User entries are overwritten on redefinition and never removed.
    Builtin names cannot be redefined.
    """

    def __init__(self) -> None:
        self._definitions: Dict[str, MacroDefinition] = {
            name: MacroDefinition.builtin(name) for name in BUILTIN_NAMES
        }
        # Nodes are user macros; kept up to date by define()
        self._graph = nx.DiGraph()
        # Name -> user macros whose template mentions it (defined or not)
        self._mentioned_by: Dict[str, Set[str]] = defaultdict(set)
        self._mentions: Dict[str, Set[str]] = {}

    # ------------------------------------------------------------------
    # Definitions
    # ------------------------------------------------------------------

    def define(self, name: str, template: str) -> MacroDefinition:
        """Register or overwrite the user macro *name*."""
        if not name:
            self._reject("macro name must not be empty")
        existing = self._definitions.get(name)
        if existing is not None and existing.is_builtin:
            self._reject(f"cannot redefine builtin {name!r}")

        definition = MacroDefinition.user(name, template)
        self._definitions[name] = definition
        self._link(name, template)
        logger.info(
            "%s macro %r = %r",
            "Redefined" if existing is not None else "Defined",
            name,
            template,
        )
        return definition

    def lookup(self, name: str) -> Optional[MacroDefinition]:
        return self._definitions.get(name)

    def template(self, name: str) -> Optional[str]:
        definition = self._definitions.get(name)
        if definition is None or definition.is_builtin:
            return None
        return definition.template

    def user_macros(self) -> Dict[str, str]:
        """Name -> template for every user-defined macro."""
        return {
            name: d.template
            for name, d in self._definitions.items()
            if not d.is_builtin
        }

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    def __iter__(self) -> Iterator[str]:
        return iter(self._definitions)

    def __len__(self) -> int:
        return len(self._definitions)

    # ------------------------------------------------------------------
    # Reference graph
    # ------------------------------------------------------------------

    def references(self, name: str) -> Set[str]:
        """User macros mentioned directly in the template of *name*."""
        if name not in self._graph:
            return set()
        return set(self._graph.successors(name))

    def reference_graph(self) -> nx.DiGraph:
        """A copy of the reference graph."""
        return self._graph.copy()

    def all_references(self, name: str) -> Set[str]:
        """Transitive closure of :meth:`references`."""
        if name not in self._graph:
            return set()
        return set(nx.descendants(self._graph, name))

    def is_recursive(self, name: str) -> bool:
        """True if expanding *name* can lead back to *name*."""
        if name not in self._graph:
            return False
        return any(
            nx.has_path(self._graph, succ, name)
            for succ in self._graph.successors(name)
        )

    def recursive_macros(self) -> Set[str]:
        """Every user macro lying on a reference cycle."""
        result: Set[str] = set(nx.nodes_with_selfloops(self._graph))
        for component in nx.strongly_connected_components(self._graph):
            if len(component) > 1:
                result.update(component)
        return result

    def to_dict(self) -> Dict[str, Any]:
        edges: List[Dict[str, str]] = [
            {"src": s, "dest": d} for s, d in sorted(self._graph.edges())
        ]
        return {"vertices": sorted(self._graph.nodes()), "edges": edges}

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _link(self, name: str, template: str) -> None:
        """Update the graph for a (re)definition of *name*."""
        for old in self._mentions.get(name, set()):
            self._mentioned_by[old].discard(name)
        mentions = set(_NAME_RE.findall(template))
        self._mentions[name] = mentions

        if name in self._graph:
            self._graph.remove_edges_from(list(self._graph.out_edges(name)))
        else:
            self._graph.add_node(name)
            # Earlier templates that already mention the new name
            for src in self._mentioned_by.get(name, set()):
                self._graph.add_edge(src, name)

        for dest in mentions:
            self._mentioned_by[dest].add(name)
            if dest in self._graph:
                self._graph.add_edge(name, dest)

    def _reject(self, message: str) -> None:
        error = BuiltinArgumentError(BUILTIN_DEFINE, message)
        logger.warning("%s", error)
        raise error
