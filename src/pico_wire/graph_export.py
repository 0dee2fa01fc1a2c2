from typing import Any, Dict, List, Optional, Tuple


def build_dependency_graph(container: Any) -> Dict[str, Tuple[str, ...]]:
    """Component name -> names of the components it received, as recorded while wiring."""
    names: List[str] = list(container.definition_names())
    for name in container.singleton_names():
        if name not in names:
            names.append(name)
    graph: Dict[str, Tuple[str, ...]] = {}
    for name in names:
        graph[name] = tuple(container.dependencies_of(name))
    return graph


def _dot_label(container: Any, name: str, include_scopes: bool) -> str:
    if include_scopes and container.contains_definition(name):
        return f"{name}\\n[scope={container.get_definition(name).scope}]"
    return name


def export_graph(container: Any, path: str, *, include_scopes: bool = True, rankdir: str = "LR", title: Optional[str] = None) -> None:
    """Write the dependency graph of *container* to *path* in Graphviz DOT format.

    Edges point from a component to the components injected into it. Only
    relations recorded so far appear, so export after the singletons have
    been created.
    """
    if container is None:
        raise ValueError("No container given; cannot export dependency graph.")

    graph = build_dependency_graph(container)
    node_ids: Dict[str, str] = {}
    body: List[str] = []

    def node(name: str) -> str:
        if name not in node_ids:
            node_ids[name] = f"n_{len(node_ids)}"
            body.append(f'  {node_ids[name]} [label="{_dot_label(container, name, include_scopes)}"];')
        return node_ids[name]

    for name in graph:
        node(name)
    for name, deps in graph.items():
        body.extend(f"  {node(name)} -> {node(dep)};" for dep in deps)

    header = ["digraph Pico {", f'  rankdir="{rankdir}";', "  node [shape=box, fontsize=10];"]
    if title:
        header += ['  labelloc="t";', f'  label="{title}";']
    with open(path, "w", encoding="utf-8") as out:
        out.write("\n".join(header + body + ["}"]))


__all__ = ["build_dependency_graph", "export_graph"]
