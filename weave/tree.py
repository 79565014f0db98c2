"""
Parse tree and expansion engine.

A Tree holds the fragment being generated as a tree of TreeNodes. Expansion
is driven one node at a time by `Tree.step()` from an explicit stack, so a
caller can pause between steps and look at the partially expanded text.
Keys named by actions are bound as soon as the node that produces their
value is fully resolved, innermost first, in document order.
"""

from weave.errors import BadHandlerError, ModifierArityError, UndefinedRuleError, UnknownModifierError, WeaveError
from weave.modifiers import ModifierKind
from weave.patterns import FragmentKind, classify, is_expandable, parse_modifier
from weave.result import Result
from weave.symbols import SymbolTable
from weave.diagnostics import debug_log


def placeholder(name):
    """Visible stand-in for a rule that resolves to nothing."""
    return "{{" + name + "}}"


class TreeNode:
    """
    One fragment of text in the parse tree.

    `complete` is fixed at construction: a node is complete when its text
    holds no rule reference and no action group. `children` is filled the
    first (and only) time the node is expanded.
    """

    def __init__(self, text, hidden=False):
        self.text = text
        self.complete = not is_expandable(text)
        self.children = []
        self.hidden = hidden
        self.key = None  # None: no binding, "": resolve but discard
        self.modifiers = []
        self.rule_name = None
        self._fired = {}  # Tree/node modifier index -> output of its one application

    @property
    def expanded(self):
        return self.complete or bool(self.children)

    def add_child(self, text):
        child = TreeNode(text, hidden=self.hidden)
        self.children.append(child)
        return child

    def incomplete_children(self):
        return [child for child in self.children if not child.complete]

    def last_expandable_child(self):
        """The last child, scanning right to left, that is not complete."""
        for child in reversed(self.children):
            if not child.complete:
                return child
        return None

    def preview(self):
        """Leaf text as it stands, without modifiers or hidden leaves."""
        if not self.children:
            return "" if self.hidden else self.text
        return "".join(child.preview() for child in self.children)

    def walk(self):
        """This node and its descendants, depth first, left to right."""
        yield self
        for child in self.children:
            yield from child.walk()

    # ==========================================
    # EXPANSION
    # ==========================================

    def expand(self, tree):
        """Create this node's children according to its production."""
        if self.expanded:
            return

        fragment = classify(self.text)
        kind = fragment.kind
        debug_log(f"Expanding {kind.value}: {self.text!r}")

        if kind is FragmentKind.ONLY_RULE:
            rule = fragment.first
            output = self._resolve_rule(rule.name, tree)
            self.rule_name = rule.name
            self.modifiers.extend(rule.modifiers)
            self.add_child(output)

        elif kind is FragmentKind.ONLY_RULE_WITH_ACTIONS:
            # Actions are bound before the rule that may read them
            rule = fragment.first
            self.add_child(rule.actions_source)
            self.add_child(rule.reference)

        elif kind is FragmentKind.KEYLESS_RULE_ACTION:
            self.hidden = True
            self.add_child(fragment.first.body).key = ""

        elif kind is FragmentKind.KEY_WITH_RULE_ACTION:
            action = fragment.first
            self.hidden = True
            self.add_child(action.body).key = action.key

        elif kind is FragmentKind.KEY_WITH_TEXT_ACTION:
            action = fragment.first
            self.hidden = True
            body = action.body
            tokens = body.split(",") if body else []
            tree.symbols.push(action.key, list(tokens))
            for token in tokens or [""]:
                self.add_child(token)

        elif kind in (FragmentKind.ONLY_ACTIONS, FragmentKind.MIXED_TEXT):
            for segment in fragment.segments:
                if segment.source:
                    self.add_child(segment.source)

    def _resolve_rule(self, name, tree):
        """Output text for one rule reference: bound value first, then grammar."""
        content = tree.symbols.lookup(name)
        if content is None:
            if tree.grammar.strict_rules:
                raise UndefinedRuleError(
                    f"Rule '{name}' is not defined",
                    rule=name,
                    fragment=self.text,
                    suggestion=f"Add '{name}' to the grammar or bind it with [{name}:...]",
                )
            tree.warn(f"Undefined rule '{name}'")
            return placeholder(name)
        return self._resolve_content(name, content, tree)

    def _resolve_content(self, name, content, tree):
        if isinstance(content, str):
            return content
        if isinstance(content, list):
            if not content:
                return ""
            return self._resolve_content(name, tree.grammar.selector.pick(content), tree)
        if isinstance(content, dict):
            return self._run_handler(name, content, tree)
        if isinstance(content, (int, float)):
            return str(content)
        return ""

    def _run_handler(self, name, content, tree):
        handler_name = content.get("handler")
        if handler_name is None:
            raise BadHandlerError(
                "Rule content is an object without a 'handler' field",
                rule=name,
                fragment=self.text,
                suggestion='Add "handler": "<name>" to the rule object',
            )
        handler = tree.grammar.handlers.get(handler_name)
        if handler is None:
            raise BadHandlerError(
                f"No object handler registered as '{handler_name}'",
                rule=name,
                fragment=self.text,
                suggestion=f"Register it with add_object_handler('{handler_name}', fn)",
            )

        result = handler(content, tree.grammar.rng)
        value = result
        if isinstance(result, Result):
            if result.is_err():
                tree.warn(f"Rule '{name}': {result.error}")
                return placeholder(name)
            value = result.unwrap()
        if not isinstance(value, str):
            raise BadHandlerError(
                f"Handler '{handler_name}' returned {type(value).__name__}, expected a string",
                rule=name,
                fragment=self.text,
            )
        return value

    # ==========================================
    # FLATTEN
    # ==========================================

    def flatten(self, tree, ignore_hidden=True, ignore_modifiers=False):
        """Serialize this subtree, applying modifiers unless told not to."""
        output = self._flatten_children(tree, ignore_hidden)
        if self.modifiers and not ignore_modifiers:
            output = self._apply_modifiers(tree, output)
        return output

    def _flatten_children(self, tree, ignore_hidden):
        if not self.children:
            if ignore_hidden and self.hidden:
                return ""
            return self.text

        parts = []
        for child in self.children:
            try:
                parts.append(child.flatten(tree, ignore_hidden))
            except WeaveError as e:
                e.add_context(self.text)
                raise
        return "".join(parts)

    def _apply_modifiers(self, tree, output):
        if not output:
            return output

        grammar = tree.grammar
        for index, token in enumerate(self.modifiers):
            call = parse_modifier(token)
            modifier = grammar.modifiers.get(call.name)
            if modifier is None:
                if grammar.strict_modifiers:
                    raise UnknownModifierError(
                        f"Unknown modifier '{call.name}'",
                        rule=self.rule_name,
                        fragment=self.text,
                        suggestion="Register it with add_modifier() or load the built-in modifiers",
                    )
                tree.warn(f"Unknown modifier '{call.name}' on rule '{self.rule_name}', left as is")
                continue

            if not modifier.accepts(len(call.params)):
                raise ModifierArityError(
                    call.name,
                    modifier.arity,
                    len(call.params),
                    rule=self.rule_name,
                    fragment=self.text,
                )

            if modifier.kind is ModifierKind.TEXT:
                output = modifier.apply(output, call.params)
            elif index in self._fired:
                output = self._fired[index]
            else:
                output = modifier.apply(output, call.params, tree=tree, node=self, rule=self.rule_name)
                self._fired[index] = output
        return output

    def __repr__(self):
        flags = "complete" if self.complete else ("expanded" if self.children else "pending")
        if self.hidden:
            flags += ",hidden"
        return f"TreeNode({self.text!r}, {flags})"


class Tree:
    """
    A parse tree being expanded against a grammar.

    Owns the root node, its own scoped symbol table and the stack of nodes
    whose expansion is in progress. Trees are cheap; make one per output.
    """

    def __init__(self, text, grammar):
        self.grammar = grammar
        self.root = TreeNode(text)
        self.symbols = SymbolTable(grammar.rules)
        self.warnings = []
        self._stack = []

    @property
    def finished(self):
        return not self._stack and not self.unexpanded_leaves()

    def unexpanded_leaves(self):
        """Nodes still waiting for expansion, in document order."""
        return [node for node in self.root.walk() if not node.expanded]

    def warn(self, message):
        """Record a non-fatal problem; callers decide whether to show `warnings`."""
        self.warnings.append(message)
        debug_log(f"Warning: {message}")

    def step(self):
        """
        Expand one node. Returns True while unexpanded work remains.

        The node on top of the stack is expanded. If none of its children
        need expanding it is resolved and popped, along with every ancestor
        whose last expandable child was the node just resolved. Otherwise
        its incomplete children are pushed right to left, so the leftmost
        one is expanded next.
        """
        if not self._stack:
            if self.root.expanded:
                return False
            self._stack.append(self.root)

        node = self._stack[-1]
        try:
            node.expand(self)
        except WeaveError as e:
            self._add_context(e, self._stack[:-1])
            raise

        pending = node.incomplete_children()
        if pending:
            self._stack.extend(reversed(pending))
            return True

        try:
            self._unwind()
        except WeaveError as e:
            # The node being bound is already off the stack
            self._add_context(e, self._stack)
            raise
        return bool(self._stack)

    @staticmethod
    def _add_context(error, ancestors):
        for ancestor in reversed(ancestors):
            error.add_context(ancestor.text)

    def _unwind(self):
        resolved = self._stack.pop()
        self._bind(resolved)
        while self._stack and self._stack[-1].last_expandable_child() is resolved:
            resolved = self._stack.pop()
            self._bind(resolved)

    def _bind(self, node):
        """Bind a resolved node's value to its key; "" resolves without binding."""
        if node.key is None:
            return
        value = node.flatten(self, ignore_hidden=False)
        if node.key:
            debug_log(f"Binding {node.key!r} = {value!r}")
            self.symbols.push(node.key, value)

    def expand_fully(self):
        while self.step():
            pass
        return self

    def step_breadth_first(self):
        """
        Expand every leaf that is unexpanded right now, left to right.

        Each call descends one level across the whole tree. Nothing is bound
        to keys in this mode: action keys whose value comes from a rule stay
        unbound, while `[key:text]` actions still bind as they expand. Do not
        mix this with `step()` on the same tree. Returns True while
        unexpanded leaves remain.
        """
        for node in self.unexpanded_leaves():
            node.expand(self)
        return bool(self.unexpanded_leaves())

    def flatten(self, ignore_hidden=True):
        return self.root.flatten(self, ignore_hidden)

    def preview(self):
        return self.root.preview()

    def __repr__(self):
        return f"Tree({self.root.text!r}, finished={self.finished})"
