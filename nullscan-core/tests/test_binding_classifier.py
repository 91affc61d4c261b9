"""Tests for the binding classifier."""

import pytest

from nullscan.models.findings import BindingKind
from nullscan.policy.rule_engine import load_source_rules
from nullscan.scanner.binding_classifier import BindingClassifier, looks_like_event_handler


@pytest.fixture(scope="module")
def classifier() -> BindingClassifier:
    return BindingClassifier(load_source_rules())


def _names(classifier: BindingClassifier, line: str, lines=None, line_number: int = 1) -> list[str]:
    lines = lines or [line]
    return [b.name for b in classifier.classify(line, line_number, 1, lines)]


class TestParameters:
    """Function and closure parameters are risky unless conventional."""

    def test_function_declaration(self, classifier):
        bindings = classifier.classify("function render(user, options) {", 3, 1, [])
        assert [b.name for b in bindings] == ["user", "options"]
        assert all(b.kind == BindingKind.PARAMETER for b in bindings)
        assert all(b.origin_line == 3 and b.depth == 1 for b in bindings)

    def test_default_and_rest_are_excluded(self, classifier):
        assert _names(classifier, "function load(user, opts = {}, ...rest) {") == ["user"]

    def test_typescript_annotations_stripped(self, classifier):
        assert _names(classifier, "function load(user: User, id?: string) {") == ["user", "id"]

    def test_destructured_parameter_dropped(self, classifier):
        assert _names(classifier, "function load({ id }, user) {") == ["user"]

    def test_arrow_function(self, classifier):
        assert _names(classifier, "const render = (user, opts) => {") == ["user", "opts"]

    def test_async_single_param_arrow(self, classifier):
        assert _names(classifier, "const fetchUser = async id => {") == ["id"]

    def test_route_handler(self, classifier):
        assert _names(classifier, "app.get('/users', (req, res) => {") == ["req", "res"]

    def test_origin_col_after_declaration(self, classifier):
        line = "function f(user) { return user.name; }"
        binding = classifier.classify(line, 1, 0, [line])[0]
        assert line[binding.origin_col:].startswith(" { return")


class TestConventions:
    """Calling conventions that always supply their arguments."""

    def test_event_param_names(self, classifier):
        assert _names(classifier, "function process(event, user) {") == ["user"]

    def test_e_in_named_handler(self, classifier):
        assert _names(classifier, "function handleClick(e) {") == []
        assert _names(classifier, "function onSubmit(e) {") == []
        assert _names(classifier, "function contextMenu(e) {") == []

    def test_e_elsewhere_is_risky(self, classifier):
        assert _names(classifier, "function process(e) {") == ["e"]

    def test_listener_callback(self, classifier):
        assert _names(classifier, "button.addEventListener('click', function (evt, extra) {") == []

    def test_array_callback(self, classifier):
        assert _names(classifier, "items.forEach(function (item) {") == []
        assert _names(classifier, "const kept = rows.filter(function (row) {") == []

    def test_named_anonymous_function_expression(self, classifier):
        assert _names(classifier, "const onResize = function (e) {") == []

    def test_for_of_loop_variable(self, classifier):
        assert _names(classifier, "for (const item of items) {") == []
        assert _names(classifier, "for (let key in obj) {") == []

    def test_framework_signature(self):
        classifier = BindingClassifier(load_source_rules(), [["req", "res", "next"]])
        assert _names(classifier, "router.post('/x', (req, res, next) => {") == []
        assert _names(classifier, "function handler(req, res) {") == ["req", "res"]

    @pytest.mark.parametrize("name", ["onLoad", "handleSubmit", "clickHandler", "resizeListener", "doneCallback"])
    def test_handler_names(self, name):
        assert looks_like_event_handler(name)

    @pytest.mark.parametrize("name", ["", "render", "process", "loadUser"])
    def test_non_handler_names(self, name):
        assert not looks_like_event_handler(name)


class TestAssignments:
    """Assignments are risky when the source rules say the value may be absent."""

    def test_element_lookup(self, classifier):
        bindings = classifier.classify("const el = document.getElementById('main');", 4, 1, [])
        assert len(bindings) == 1
        assert bindings[0].kind == BindingKind.ASSIGNMENT
        assert bindings[0].rule_id == "element-by-id"
        assert bindings[0].source == "document.getElementById('main')"

    def test_find_and_map_get(self, classifier):
        assert _names(classifier, "let match = users.find(u => u.id === id);") == ["match"]
        assert _names(classifier, "var entry = cache.get(key);") == ["entry"]

    def test_always_value_sources(self, classifier):
        assert _names(classifier, "const rows = document.querySelectorAll('tr');") == []
        assert _names(classifier, "const name = input.value.trim();") == []
        assert _names(classifier, "const node = document.createElement('div');") == []
        assert _names(classifier, "const list = [];") == []

    def test_fallback_operator_makes_safe(self, classifier):
        assert _names(classifier, "const entry = cache.get(key) ?? {};") == []
        assert _names(classifier, "const el = document.querySelector('.a') || fallback;") == []

    def test_unknown_source_is_not_risky(self, classifier):
        assert _names(classifier, "const total = compute(a, b);") == []

    def test_length_check_exempts_indexed_read(self, classifier):
        lines = [
            "if (items.length > 0) {",
            "  const first = items[0];",
            "}",
        ]
        assert _names(classifier, lines[1], lines, line_number=2) == []

    def test_indexed_read_without_check(self, classifier):
        lines = ["const first = items[0];"]
        assert _names(classifier, lines[0], lines) == ["first"]
