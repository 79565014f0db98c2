"""
Unit tests for the parse tree and the step-wise expansion engine.
"""
import pytest

from weave.errors import BadHandlerError, ModifierArityError, UndefinedRuleError, UnknownModifierError
from weave.grammar import Grammar
from weave.modifiers import ModifierKind, base_english_modifiers, base_extended_modifiers
from weave.result import Ok
from weave.tree import TreeNode, placeholder


class TestTreeNode:
    """Node construction and completeness."""

    def test_complete_text(self):
        """Text without rules or actions is complete."""
        node = TreeNode("blah")
        assert node.complete
        assert node.expanded
        assert node.last_expandable_child() is None

    def test_incomplete_text(self):
        """A rule reference makes a node incomplete."""
        node = TreeNode("abc #rule#")
        assert not node.complete
        assert not node.expanded

    def test_children_inherit_hidden(self):
        """Children of a hidden node are hidden."""
        node = TreeNode("[k:v]", hidden=True)
        assert node.add_child("v").hidden

    def test_last_expandable_child(self):
        """Scans from the right for the last incomplete child."""
        node = TreeNode("#a# b #c# d")
        node.add_child("#a#")
        node.add_child(" b ")
        last = node.add_child("#c#")
        node.add_child(" d")
        assert node.last_expandable_child() is last

    def test_placeholder(self):
        assert placeholder("villain") == "{{villain}}"


class TestStepping:
    """One node per step, leftmost first."""

    RULES = {"a": "#b# #c#", "b": "B", "c": "C"}

    def test_step_results(self):
        """step() reports remaining work until the whole tree is resolved."""
        tree = Grammar(self.RULES).get_tree("#a#")
        assert [tree.step() for _ in range(4)] == [True, True, True, False]
        assert tree.finished
        assert tree.step() is False

    def test_intermediate_state(self):
        """Between steps the partial text is observable."""
        tree = Grammar(self.RULES).get_tree("#a#")
        assert tree.preview() == "#a#"
        tree.step()
        tree.step()
        tree.step()
        assert tree.preview() == "B #c#"
        assert not tree.finished

    def test_expand_fully(self):
        tree = Grammar(self.RULES).get_tree("#a#").expand_fully()
        assert tree.flatten() == "B C"

    def test_complete_root_needs_no_work(self):
        """Plain text is finished after a single step."""
        tree = Grammar({}).get_tree("plain")
        assert tree.step() is False
        assert tree.flatten() == "plain"

    def test_nodes_expand_once(self):
        """Each rule node has exactly one child after expansion."""
        tree = Grammar({"r": ["x", "y"]}).get_tree("#r# #r#").expand_fully()
        for node in tree.root.walk():
            if node.rule_name == "r":
                assert len(node.children) == 1


class TestBindings:
    """Actions bind keys as their values resolve."""

    def test_hidden_text_action(self):
        """[mood:happy] shows nothing but binds mood."""
        assert Grammar({}).flatten("[mood:happy]I am #mood#") == "I am happy"

    def test_text_action_binds_list(self, fixed_rng):
        """A comma separated action binds a list of alternatives."""
        grammar = Grammar({}, rng=fixed_rng(1))
        tree = grammar.get_tree("[colors:red,green]")
        tree.expand_fully()
        assert tree.symbols.lookup("colors") == ["red", "green"]
        assert grammar.flatten("[colors:red,green]#colors#") == "green"

    def test_empty_text_action(self):
        """[k:] binds an empty list, which resolves to empty text."""
        tree = Grammar({}).get_tree("[k:]#k#").expand_fully()
        assert tree.symbols.lookup("k") == []
        assert tree.flatten() == ""
        assert tree.warnings == []

    def test_rule_action_binds_expansion(self):
        """The key gets the flattened, modified rule output."""
        grammar = Grammar({"name": "ada"})
        grammar.add_modifier("upper", str.upper)
        assert grammar.flatten("[hero:#name.upper#]#hero# and #hero#") == "ADA and ADA"

    def test_bindings_in_document_order(self):
        """A later action sees the value an earlier one bound."""
        assert Grammar({"x": "X"}).flatten("[a:#x#][b:#a#]#b#") == "X"

    def test_keyless_action_binds_nothing(self):
        """[#rule#] runs the rule for its own actions and shows nothing."""
        tree = Grammar({"set": "[k:v]", "visible": "text"}).get_tree("[#set#][#visible#]#k#").expand_fully()
        assert tree.flatten() == "v"
        assert tree.symbols.keys() == ["k"]

    def test_binding_is_per_tree(self):
        """Trees from the same grammar do not share bindings."""
        grammar = Grammar({})
        assert grammar.flatten("[k:v]#k#") == "v"
        assert grammar.flatten("#k#") == "{{k}}"

    def test_shadowing(self):
        """A nested binding hides the outer one."""
        assert Grammar({"k": "static"}).flatten("[k:v1][k:v2]#k#") == "v2"


class TestResolution:
    """Rule content types."""

    def test_undefined_rule_placeholder(self):
        """Undefined rules render as a placeholder and warn."""
        tree = Grammar({}).get_tree("the #villain# laughs").expand_fully()
        assert tree.flatten() == "the {{villain}} laughs"
        assert len(tree.warnings) == 1
        assert "villain" in tree.warnings[0]

    def test_undefined_rule_strict(self):
        """strict_rules raises with the enclosing fragment traced."""
        tree = Grammar({}, strict_rules=True).get_tree("say #missing#")
        with pytest.raises(UndefinedRuleError) as exc_info:
            tree.expand_fully()
        assert exc_info.value.rule == "missing"
        assert exc_info.value.trace == ["say #missing#"]

    def test_number_content(self):
        assert Grammar({"n": 5}).flatten("#n#") == "5"

    def test_empty_list_content(self):
        assert Grammar({"e": []}).flatten("[#e#]x#e#") == "x"

    def test_nested_list_content(self, fixed_rng):
        """Lists inside lists are picked from again."""
        assert Grammar({"r": [["a", "b"], "c"]}, rng=fixed_rng(1)).flatten("#r#") == "c"
        assert Grammar({"r": [["a", "b"], "c"]}, rng=fixed_rng(0, alternate=True)).flatten("#r#") == "b"

    def test_handler_content(self):
        rules = {"d": {"handler": "discrete-distribution", "values": ["only"], "weights": [1]}}
        assert Grammar(rules).flatten("#d#") == "only"

    def test_handler_err_is_placeholder(self):
        """Invalid parameters degrade to a placeholder with a warning."""
        rules = {"d": {"handler": "discrete-distribution", "values": ["a"], "weights": [-1]}}
        tree = Grammar(rules).get_tree("#d#").expand_fully()
        assert tree.flatten() == "{{d}}"
        assert "discrete-distribution" in tree.warnings[0]

    def test_custom_handler(self):
        """Handlers may return Ok or a plain string."""
        grammar = Grammar({"a": {"handler": "first", "values": ["x", "y"]}, "b": {"handler": "last", "values": ["x", "y"]}})
        grammar.add_object_handler("first", lambda content, rng: Ok(content["values"][0]))
        grammar.add_object_handler("last", lambda content, rng: content["values"][-1])
        assert grammar.flatten("#a##b#") == "xy"

    def test_missing_handler_field(self):
        tree = Grammar({"outer": "x #thing#", "thing": {"values": []}}).get_tree("#outer#")
        with pytest.raises(BadHandlerError) as exc_info:
            tree.expand_fully()
        assert exc_info.value.rule == "thing"
        assert exc_info.value.trace == ["x #thing#", "#outer#"]

    def test_unregistered_handler(self):
        with pytest.raises(BadHandlerError, match="nope"):
            Grammar({"r": {"handler": "nope"}}).flatten("#r#")

    def test_handler_must_return_string(self):
        grammar = Grammar({"r": {"handler": "count"}})
        grammar.add_object_handler("count", lambda content, rng: Ok(3))
        with pytest.raises(BadHandlerError, match="expected a string"):
            grammar.flatten("#r#")


class TestModifiersOnFlatten:
    """Modifier dispatch while flattening."""

    def test_empty_base_skips_modifiers(self):
        """Nothing is applied to empty output."""
        calls = []
        grammar = Grammar({"e": ""})
        grammar.add_modifier("track", lambda text: calls.append(text) or text)
        assert grammar.flatten("#e.track#") == ""
        assert calls == []

    def test_unknown_modifier_passes_through(self):
        tree = Grammar({"a": "dog"}).get_tree("#a.nope#").expand_fully()
        assert tree.flatten() == "dog"
        assert "nope" in tree.warnings[0]

    def test_unknown_modifier_strict(self):
        tree = Grammar({"a": "dog"}, strict_modifiers=True).get_tree("#a.nope#").expand_fully()
        with pytest.raises(UnknownModifierError):
            tree.flatten()

    def test_arity_error_traces_nesting(self):
        """The arity error names the modifier and every enclosing fragment."""
        grammar = Grammar({"rule": "word", "inner": "#rule.pair(x)#", "outer": "say #inner#"})
        grammar.add_modifier("pair", lambda text, a, b: text + a + b)
        tree = grammar.get_tree("#outer#").expand_fully()
        with pytest.raises(ModifierArityError) as exc_info:
            tree.flatten()
        error = exc_info.value
        assert (error.modifier, error.expected, error.received) == ("pair", 2, 1)
        assert error.fragment == "#rule.pair(x)#"
        assert error.trace == ["#inner#", "say #inner#", "#outer#"]
        assert "in say #inner#" in str(error)

    def test_ignore_modifiers(self):
        grammar = Grammar({"a": "dog"})
        grammar.add_modifier("upper", str.upper)
        tree = grammar.get_tree("#a.upper#").expand_fully()
        assert tree.root.flatten(tree, ignore_modifiers=True) == "dog"
        assert tree.flatten() == "DOG"

    def test_node_modifier_fires_once(self):
        """Tree and node modifiers act once per node and keep their first output."""
        seen = []
        grammar = Grammar({"a": "x"})
        grammar.add_modifier("mark", lambda node, rule: seen.append(rule) or "marked", kind=ModifierKind.NODE)
        tree = grammar.get_tree("#a.mark#").expand_fully()
        assert tree.flatten() == "marked"
        assert tree.flatten() == "marked"
        assert seen == ["a"]

    def test_show_hidden(self):
        """Hidden action output appears when hiding is turned off."""
        tree = Grammar({}).get_tree("[mood:happy]I am #mood#").expand_fully()
        assert tree.flatten(ignore_hidden=False) == "happyI am happy"


class TestIdempotentFlatten:
    """Flattening a finished tree again gives the same text."""

    @pytest.mark.parametrize("text", [
        "[hero:#name.capitalize#]#hero# met #villain#",
        "[k:v1][k:v2]#k#[#k.pop!!#]#k#[#k.pop!!#]#k#",
        "#story#",
    ])
    def test_flatten_twice(self, text):
        rules = {
            "name": "ada",
            "villain": "#name#'s rival",
            "k": "static",
            "subject": "dog",
            "story": "#[subject:door]subject# then #subject.pop!!##subject#",
        }
        grammar = Grammar(rules, modifiers=base_english_modifiers())
        grammar.add_modifiers(base_extended_modifiers())
        tree = grammar.get_tree(text).expand_fully()
        first = tree.flatten()
        assert tree.flatten() == first
        assert tree.flatten(ignore_hidden=False) == tree.flatten(ignore_hidden=False)

    def test_pop_runs_once(self):
        """A second flatten does not pop the binding again."""
        grammar = Grammar({"k": "static"}, modifiers=base_extended_modifiers())
        tree = grammar.get_tree("[k:v1][k:v2]#k.pop!!#").expand_fully()
        tree.flatten()
        tree.flatten()
        assert tree.symbols.lookup("k") == ["v1"]


class TestWarnings:
    """Warnings are collected on the tree, not printed."""

    def test_warnings_not_written(self, capsys):
        tree = Grammar({}).get_tree("#missing.nope#").expand_fully()
        tree.flatten()
        assert tree.warnings == ["Undefined rule 'missing'", "Unknown modifier 'nope' on rule 'missing', left as is"]
        assert capsys.readouterr().err == ""


class TestBreadthFirst:
    """One level of the whole tree per call."""

    RULES = {"a": "#b# #c#", "b": "B #d#", "c": "C", "d": "D"}

    def test_levels(self):
        tree = Grammar(self.RULES).get_tree("#a#")
        states = []
        while tree.step_breadth_first():
            states.append(tree.preview())
        states.append(tree.preview())
        assert states == ["#b# #c#", "#b# #c#", "B #d# C", "B #d# C", "B D C"]
        assert tree.finished
        assert tree.flatten() == "B D C"

    def test_unexpanded_leaves_in_document_order(self):
        tree = Grammar(self.RULES).get_tree("#a#")
        tree.step_breadth_first()
        tree.step_breadth_first()
        assert [node.text for node in tree.unexpanded_leaves()] == ["#b#", "#c#"]

    def test_rule_actions_are_not_bound(self):
        """Keys fed by rules stay unbound; text actions still bind."""
        tree = Grammar({"x": "X"}).get_tree("[k:#x#][t:text]#k# #t#")
        while tree.step_breadth_first():
            pass
        assert tree.flatten() == "{{k}} text"
        assert tree.warnings == ["Undefined rule 'k'"]
