"""
USDB Algo Flowchart Generator
=============================

Lowers the control structure of an Algo program into node/edge graphs:
one FlowchartSet for the main program and one per function/procedure.
C input is first translated to Algo, and the translator's source map lets
a UI relate every node back to a line of the C file.

Lowering Rules
--------------
| Statement   | Graph                                                  |
|-------------|--------------------------------------------------------|
| x <- v      | process "x ← v"                                        |
| PRINT(...)  | process "Print(...)"                                   |
| SCAN(...)   | process "Read(...)"                                    |
| p(...)      | call "p(...)"                                          |
| RETURN(v)   | return "Return v", flows to the routine's end node     |
| IF          | decision, true/false branches joined by a merge node   |
| WHILE       | loop node, true into body, back-edge, false exits      |
| DO ... WHILE| body, loop node, true back to body head, false exits   |
| FOR         | init process, loop node, body, increment, back-edge    |
| SWITCH      | decision with one case edge per clause plus default    |

Lowering works on "exits": (node id, edge label, edge kind) triples that
are still waiting for their next node. An IF without ELSE simply passes
the decision's false exit on to the merge node; a RETURN produces no exit.

Each set is laid out top-down while it is lowered (branches spread
horizontally, loops stacked), then shifted so every coordinate is at least
the configured padding.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Union
import logging

from usdb_algo.ast import (
    ASTVisitor, AssignmentStatement, BlockStatement, CallStatement,
    DoWhileStatement, Expression, ForStatement, FunctionCall,
    FunctionDeclaration, IfStatement, PrintStatement, ProcedureDeclaration,
    Program, ReturnStatement, ScanStatement, Statement, SwitchStatement,
    UnaryExpression, WhileStatement, ParenExpression, format_expression,
    format_parameter, format_type,
)
from usdb_algo.c_to_algo import translate_c_to_algo
from usdb_algo.codegen import is_negative_literal
from usdb_algo.config import LayoutConfig, UsdbConfig
from usdb_algo.errors import SourceSpan
from usdb_algo.parser import parse

logger = logging.getLogger(__name__)


# =============================================================================
# Graph Model
# =============================================================================

class NodeKind(Enum):
    """Shape of a flowchart node."""
    START = "start"
    END = "end"
    PROCESS = "process"
    DECISION = "decision"
    LOOP = "loop"
    CALL = "call"
    RETURN = "return"
    MERGE = "merge"
    DECLARATION = "declaration"


class EdgeKind(Enum):
    """Role of a flowchart edge."""
    NORMAL = "normal"
    TRUE = "true"
    FALSE = "false"
    LOOP = "loop"
    CASE = "case"


@dataclass
class FlowchartNode:
    """
    A node of a flowchart.

    Attributes:
        id: Identifier unique within its set ("n1", "n2", ...)
        kind: Node shape
        label: Display text (truncated to the configured maximum)
        span: Source span of the originating statement or declaration
        x, y: Top-left corner after layout
        width, height: Box size
        links: Names of locally declared routines this node calls
    """
    id: str
    kind: NodeKind
    label: str
    span: Optional[SourceSpan] = None
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0
    links: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "kind": self.kind.value,
            "label": self.label,
            "x": self.x,
            "y": self.y,
            "width": self.width,
            "height": self.height,
            "links": list(self.links),
            "span": None,
        }
        if self.span is not None:
            data["span"] = {
                "start": {"line": self.span.start.line, "column": self.span.start.column},
                "end": {"line": self.span.end.line, "column": self.span.end.column},
            }
        return data


@dataclass
class FlowchartEdge:
    """A directed edge; label is "true", "false", a case value or None."""
    id: str
    source: str
    target: str
    label: Optional[str] = None
    kind: EdgeKind = EdgeKind.NORMAL

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "label": self.label,
            "kind": self.kind.value,
        }


@dataclass
class FlowchartSet:
    """
    The graph of one routine or of the main program.

    Attributes:
        name: Program or routine name
        routine: "main", "function" or "procedure"
        nodes: Nodes in creation order (start first)
        edges: Edges in creation order
        width, height: Extent of the laid-out diagram including padding
    """
    name: str
    routine: str
    nodes: list[FlowchartNode] = field(default_factory=list)
    edges: list[FlowchartEdge] = field(default_factory=list)
    width: float = 0.0
    height: float = 0.0

    def node(self, node_id: str) -> Optional[FlowchartNode]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def nodes_of_kind(self, kind: NodeKind) -> list[FlowchartNode]:
        return [node for node in self.nodes if node.kind == kind]

    def outgoing(self, node_id: str) -> list[FlowchartEdge]:
        return [edge for edge in self.edges if edge.source == node_id]

    def incoming(self, node_id: str) -> list[FlowchartEdge]:
        return [edge for edge in self.edges if edge.target == node_id]

    @property
    def start(self) -> FlowchartNode:
        return self.nodes[0]

    @property
    def end(self) -> FlowchartNode:
        return self.nodes_of_kind(NodeKind.END)[-1]

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "routine": self.routine,
            "width": self.width,
            "height": self.height,
            "nodes": [node.to_dict() for node in self.nodes],
            "edges": [edge.to_dict() for edge in self.edges],
        }


@dataclass
class FlowchartResult:
    """
    Output of generate_all_flowcharts().

    Attributes:
        success: True when every set was produced
        main: Flowchart of the main program
        subroutines: Routine name -> its flowchart, in declaration order
        source_map: For C input, the translator's Algo line -> C line map
        error: "C Translation Error: ..." or "Syntax Error: ..." on failure
    """
    success: bool = False
    main: Optional[FlowchartSet] = None
    subroutines: dict[str, FlowchartSet] = field(default_factory=dict)
    source_map: Optional[list[int]] = None
    error: Optional[str] = None

    def source_line(self, node: FlowchartNode) -> Optional[int]:
        """
        0-based line of the user's source that produced node.

        For Algo input this is the node's own line. For C input the Algo
        line is looked up in the source map, walking back to the nearest
        mapped line when the node sits on a synthetic one.
        """
        if node.span is None:
            return None
        algo_line = node.span.start.line - 1
        if self.source_map is None:
            return algo_line
        for index in range(min(algo_line, len(self.source_map) - 1), -1, -1):
            if self.source_map[index] >= 0:
                return self.source_map[index]
        return None

    def all_sets(self) -> list[FlowchartSet]:
        sets = [self.main] if self.main is not None else []
        return sets + list(self.subroutines.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "error": self.error,
            "main": self.main.to_dict() if self.main is not None else None,
            "subroutines": {name: s.to_dict() for name, s in self.subroutines.items()},
            "source_map": self.source_map,
        }


# =============================================================================
# Call Collection
# =============================================================================

class CallCollector(ASTVisitor):
    """Collects the names of routines called inside a statement or expression."""

    def __init__(self):
        self.names: list[str] = []

    def collect(self, node) -> list[str]:
        self.names = []
        self.visit(node)
        return self.names

    def visit_FunctionCall(self, node: FunctionCall):
        self.names.append(node.name)
        self.visit_all(node.arguments)

    def visit_CallStatement(self, node: CallStatement):
        self.names.append(node.name)
        self.visit_all(node.arguments)


# =============================================================================
# Builder
# =============================================================================

Exit = tuple[str, Optional[str], EdgeKind]
Routine = Union[FunctionDeclaration, ProcedureDeclaration]


class _SetBuilder:
    """Lowers one statement list into a FlowchartSet, laying it out as it goes."""

    def __init__(self, flowchart: FlowchartSet, layout: LayoutConfig, routines: Mapping[str, str]):
        self.flowchart = flowchart
        self.layout = layout
        self.routines = routines
        self.x = 0.0
        self.y = 0.0
        self._returns: list[str] = []
        self._calls = CallCollector()

    # -------------------------------------------------------------------------
    # Nodes and edges
    # -------------------------------------------------------------------------

    def add_node(self, kind: NodeKind, label: str, span: Optional[SourceSpan] = None,
                 calls_in=None) -> FlowchartNode:
        layout = self.layout
        if len(label) > layout.max_label_length:
            label = label[:layout.max_label_length - 3] + "..."

        if kind == NodeKind.MERGE:
            width = height = layout.merge_size
        else:
            diamond = kind in (NodeKind.DECISION, NodeKind.LOOP)
            capsule = kind in (NodeKind.START, NodeKind.END)
            base = layout.decision_width if diamond else layout.node_width
            width = max(base, len(label) * layout.char_width + (60 if capsule else 20))
            height = layout.decision_height if diamond else layout.node_height

        node = FlowchartNode(
            id=f"n{len(self.flowchart.nodes) + 1}",
            kind=kind,
            label=label,
            span=span,
            x=self.x - width / 2,
            y=self.y,
            width=width,
            height=height,
        )
        if calls_in is not None:
            node.links = self._links(calls_in)

        self.flowchart.nodes.append(node)
        self.y += height + layout.vertical_gap
        return node

    def add_edge(self, source: str, target: str, label: Optional[str] = None,
                 kind: EdgeKind = EdgeKind.NORMAL) -> FlowchartEdge:
        edge = FlowchartEdge(f"e{len(self.flowchart.edges) + 1}", source, target, label, kind)
        self.flowchart.edges.append(edge)
        return edge

    def connect(self, exits: list[Exit], target: str, kind: Optional[EdgeKind] = None) -> None:
        for source, label, exit_kind in exits:
            self.add_edge(source, target, label, kind or exit_kind)

    def _links(self, node) -> list[str]:
        links: list[str] = []
        for name in self._calls.collect(node):
            routine = self.routines.get(name.lower())
            if routine is not None and routine not in links:
                links.append(routine)
        return links

    # -------------------------------------------------------------------------
    # Routine skeleton
    # -------------------------------------------------------------------------

    def build(self, start_label: str, end_label: str, declarations: list[tuple[str, Any]],
              body: list[Statement]) -> FlowchartSet:
        start = self.add_node(NodeKind.START, start_label)
        exits: list[Exit] = [(start.id, None, EdgeKind.NORMAL)]

        if self.layout.include_declarations:
            for label, decl in declarations:
                node = self.add_node(NodeKind.DECLARATION, label, decl.span)
                self.connect(exits, node.id)
                exits = [(node.id, None, EdgeKind.NORMAL)]

        exits = self.lower_block(body, exits)

        end = self.add_node(NodeKind.END, end_label)
        self.connect(exits, end.id)
        for node_id in self._returns:
            self.add_edge(node_id, end.id)

        self._normalise()
        return self.flowchart

    def _normalise(self) -> None:
        nodes = self.flowchart.nodes
        padding = self.layout.padding
        min_x = min(n.x for n in nodes)
        min_y = min(n.y for n in nodes)
        max_x = max(n.x + n.width for n in nodes)
        max_y = max(n.y + n.height for n in nodes)
        for node in nodes:
            node.x += padding - min_x
            node.y += padding - min_y
        self.flowchart.width = (max_x - min_x) + 2 * padding
        self.flowchart.height = (max_y - min_y) + 2 * padding

    # -------------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------------

    def lower_block(self, statements: list[Statement], exits: list[Exit]) -> list[Exit]:
        for statement in statements:
            exits = self.lower(statement, exits)
        return exits

    def lower(self, statement: Statement, exits: list[Exit]) -> list[Exit]:
        if isinstance(statement, AssignmentStatement):
            label = f"{format_expression(statement.target)} ← {format_expression(statement.value)}"
            return self._simple(NodeKind.PROCESS, label, statement, exits)
        if isinstance(statement, PrintStatement):
            label = f"Print({', '.join(format_expression(e) for e in statement.expressions)})"
            return self._simple(NodeKind.PROCESS, label, statement, exits)
        if isinstance(statement, ScanStatement):
            label = f"Read({', '.join(format_expression(t) for t in statement.targets)})"
            return self._simple(NodeKind.PROCESS, label, statement, exits)
        if isinstance(statement, CallStatement):
            label = f"{statement.name}({', '.join(format_expression(a) for a in statement.arguments)})"
            return self._simple(NodeKind.CALL, label, statement, exits)
        if isinstance(statement, ReturnStatement):
            node = self.add_node(NodeKind.RETURN, f"Return {format_expression(statement.value)}",
                                 statement.span, calls_in=statement)
            self.connect(exits, node.id)
            self._returns.append(node.id)
            return []
        if isinstance(statement, IfStatement):
            return self._lower_if(statement, exits)
        if isinstance(statement, WhileStatement):
            return self._lower_while(statement, exits)
        if isinstance(statement, DoWhileStatement):
            return self._lower_do_while(statement, exits)
        if isinstance(statement, ForStatement):
            return self._lower_for(statement, exits)
        if isinstance(statement, SwitchStatement):
            return self._lower_switch(statement, exits)
        if isinstance(statement, BlockStatement):
            return self.lower_block(statement.statements, exits)
        raise TypeError(f"Cannot lower {statement.node_type}")

    def _simple(self, kind: NodeKind, label: str, statement: Statement, exits: list[Exit]) -> list[Exit]:
        node = self.add_node(kind, label, statement.span, calls_in=statement)
        self.connect(exits, node.id)
        return [(node.id, None, EdgeKind.NORMAL)]

    def _branches(self, branches: list[tuple[list[Statement], list[Exit]]], offsets: list[float]) -> list[Exit]:
        """Lower side-by-side branches starting at the current row."""
        center, top = self.x, self.y
        bottom = top
        exits: list[Exit] = []
        for (statements, entry), offset in zip(branches, offsets):
            self.x, self.y = center + offset, top
            exits.extend(self.lower_block(statements, entry))
            bottom = max(bottom, self.y)
        self.x, self.y = center, bottom
        return exits

    def _merge(self, exits: list[Exit]) -> list[Exit]:
        if not exits:
            return []
        merge = self.add_node(NodeKind.MERGE, "")
        self.connect(exits, merge.id)
        return [(merge.id, None, EdgeKind.NORMAL)]

    def _lower_if(self, statement: IfStatement, exits: list[Exit]) -> list[Exit]:
        decision = self.add_node(NodeKind.DECISION, format_expression(statement.condition),
                                 statement.span, calls_in=statement.condition)
        self.connect(exits, decision.id)

        offset = self.layout.horizontal_gap + self.layout.node_width / 2
        branch_exits = self._branches(
            [
                (statement.then_branch, [(decision.id, "true", EdgeKind.TRUE)]),
                (statement.else_branch or [], [(decision.id, "false", EdgeKind.FALSE)]),
            ],
            [-offset, offset],
        )
        return self._merge(branch_exits)

    def _lower_while(self, statement: WhileStatement, exits: list[Exit]) -> list[Exit]:
        loop = self.add_node(NodeKind.LOOP, format_expression(statement.condition),
                             statement.span, calls_in=statement.condition)
        self.connect(exits, loop.id)

        body_exits = self.lower_block(statement.body, [(loop.id, "true", EdgeKind.TRUE)])
        self.connect(body_exits, loop.id, EdgeKind.LOOP)
        return [(loop.id, "false", EdgeKind.FALSE)]

    def _lower_do_while(self, statement: DoWhileStatement, exits: list[Exit]) -> list[Exit]:
        first = len(self.flowchart.nodes)
        body_exits = self.lower_block(statement.body, exits)

        loop = self.add_node(NodeKind.LOOP, format_expression(statement.condition),
                             statement.span, calls_in=statement.condition)
        # An empty body makes the loop node its own head
        head = self.flowchart.nodes[first]
        self.connect(body_exits, loop.id)
        self.add_edge(loop.id, head.id, "true", EdgeKind.LOOP)
        return [(loop.id, "false", EdgeKind.FALSE)]

    def _lower_for(self, statement: ForStatement, exits: list[Exit]) -> list[Exit]:
        var = statement.variable
        init = self.add_node(NodeKind.PROCESS, f"{var} ← {format_expression(statement.start)}",
                             statement.span, calls_in=statement.start)
        self.connect(exits, init.id)

        loop = self.add_node(NodeKind.LOOP, f"{var} ≤ {format_expression(statement.end)}",
                             statement.span, calls_in=statement.end)
        self.add_edge(init.id, loop.id)

        body_exits = self.lower_block(statement.body, [(loop.id, "true", EdgeKind.TRUE)])

        increment = self.add_node(NodeKind.PROCESS, f"{var} ← {var} {_step_text(statement.step)}",
                                  statement.span)
        self.connect(body_exits, increment.id)
        self.add_edge(increment.id, loop.id, kind=EdgeKind.LOOP)
        return [(loop.id, "false", EdgeKind.FALSE)]

    def _lower_switch(self, statement: SwitchStatement, exits: list[Exit]) -> list[Exit]:
        decision = self.add_node(NodeKind.DECISION, f"Switch {format_expression(statement.expression)}",
                                 statement.span, calls_in=statement.expression)
        self.connect(exits, decision.id)

        branches = [
            (case.body, [(decision.id, ", ".join(format_expression(v) for v in case.values), EdgeKind.CASE)])
            for case in statement.cases
        ]
        branches.append((statement.default_case or [], [(decision.id, "default", EdgeKind.CASE)]))

        spacing = self.layout.node_width + self.layout.horizontal_gap
        middle = (len(branches) - 1) / 2
        offsets = [(index - middle) * spacing for index in range(len(branches))]
        return self._merge(self._branches(branches, offsets))


def _step_text(step: Optional[Expression]) -> str:
    """'+ 1', '+ 2' or '- 1' for the FOR increment label."""
    if step is None:
        return "+ 1"
    if is_negative_literal(step):
        inner = step.expression if isinstance(step, ParenExpression) else step
        if isinstance(inner, UnaryExpression):
            return f"- {format_expression(inner.operand)}"
        return f"- {format_expression(inner).lstrip('-')}"
    return f"+ {format_expression(step)}"


class FlowchartBuilder:
    """
    Builds the flowcharts of a parsed program.

    Usage:
        builder = FlowchartBuilder()
        main, subroutines = builder.build(program)
    """

    def __init__(self, layout: Optional[LayoutConfig] = None):
        self.layout = layout or LayoutConfig()

    def build(self, program: Program) -> tuple[FlowchartSet, dict[str, FlowchartSet]]:
        routines = {r.name.lower(): r.name for r in program.functions + program.procedures}

        main = _SetBuilder(FlowchartSet(program.name, "main"), self.layout, routines).build(
            f"Start {program.name}",
            f"End {program.name}",
            _declaration_labels(program),
            program.body,
        )

        subroutines: dict[str, FlowchartSet] = {}
        for routine in program.functions + program.procedures:
            subroutines[routine.name] = self.build_routine(routine, routines)

        logger.debug(
            "Built flowcharts for %s: %d main nodes, %d subroutines",
            program.name, len(main.nodes), len(subroutines),
        )
        return main, subroutines

    def build_routine(self, routine: Routine, routines: Mapping[str, str]) -> FlowchartSet:
        params = ", ".join(format_parameter(p) for p in routine.parameters)
        if isinstance(routine, FunctionDeclaration):
            kind = "function"
            start_label = f"Function {routine.name}({params}) : {format_type(routine.return_type)}"
        else:
            kind = "procedure"
            start_label = f"Procedure {routine.name}({params})"

        builder = _SetBuilder(FlowchartSet(routine.name, kind), self.layout, routines)
        return builder.build(start_label, f"End {routine.name}", _declaration_labels(routine), routine.body)


def _declaration_labels(owner) -> list[tuple[str, Any]]:
    labels = []
    for const in owner.constants:
        labels.append((f"CONST {const.name} = {format_expression(const.value)}", const))
    for type_decl in owner.types:
        labels.append((f"TYPE {type_decl.name} = {format_type(type_decl.definition)}", type_decl))
    for var in owner.variables:
        labels.append((f"VAR {', '.join(var.names)} : {format_type(var.var_type)}", var))
    return labels


# =============================================================================
# Convenience Functions
# =============================================================================

def generate_all_flowcharts(
    source: str,
    language: str = "algo",
    config: Optional[UsdbConfig] = None,
    workspace_files: Optional[Mapping[str, str]] = None,
) -> FlowchartResult:
    """
    Build the flowcharts of an Algo or C source text.

    Args:
        source: Program text
        language: "algo" or "c"
        config: Layout and translator settings
        workspace_files: Include map for C input

    Returns:
        FlowchartResult; failures are reported in its error field
    """
    config = config or UsdbConfig()
    language = language.lower()
    source_map = None

    if language == "c":
        translation = translate_c_to_algo(source, workspace_files, config)
        if not translation.success:
            return FlowchartResult(error=f"C Translation Error: {', '.join(translation.errors)}")
        source = translation.algo_code
        source_map = translation.source_map
    elif language != "algo":
        return FlowchartResult(error=f"Unsupported language '{language}'")

    parsed = parse(source)
    if not parsed.success:
        return FlowchartResult(error=f"Syntax Error: {parsed.errors[0].display()}", source_map=source_map)

    main, subroutines = FlowchartBuilder(config.layout).build(parsed.ast)
    return FlowchartResult(success=True, main=main, subroutines=subroutines, source_map=source_map)
