"""
Tests for the Lock Order Analyzer — pair extraction, graph cycles, and the E1506 rule.
"""

from hyplint.core.engine import Analyzer
from hyplint.core.lock_order import LockOrderGraph, extract_lock_pairs, lock_identity
from hyplint.models.diagnostic_models import Location, Severity
from hyplint.models.lock_models import LockOrderPair, Witness
from hyplint.models.syntax_models import SourceFile


def _pairs(parse, code):
    return [(p.held, p.acquired) for p in extract_lock_pairs(parse(code))]


def _pair(held, acquired, function="f", line=1):
    return LockOrderPair(
        held=held,
        acquired=acquired,
        witness=Witness(function=function, location=Location(file="x.rs", line=line)),
    )


# ── Phase 1: extraction ──


def test_bound_guards_produce_ordered_pair(parse, bank_transfer_code):
    pairs = extract_lock_pairs(parse(bank_transfer_code, "transfer.rs"))
    assert len(pairs) == 1
    pair = pairs[0]
    assert (pair.held, pair.acquired) == ("self.a", "self.b")
    assert pair.witness.function == "Bank::transfer"
    assert pair.witness.location.file == "transfer.rs"
    assert pair.witness.location.line == 13


def test_guard_released_at_block_end(parse):
    code = (
        "fn scoped(&self) {\n"
        "    {\n"
        "        let x = self.a.lock().unwrap();\n"
        "    }\n"
        "    let y = self.b.lock().unwrap();\n"
        "}\n"
    )
    assert _pairs(parse, code) == []


def test_drop_releases_guard(parse):
    code = (
        "fn early(&self) {\n"
        "    let x = self.a.lock().unwrap();\n"
        "    drop(x);\n"
        "    let y = self.b.lock().unwrap();\n"
        "}\n"
    )
    assert _pairs(parse, code) == []


def test_temporaries_released_at_statement_end(parse):
    code = (
        "fn bump(&self) {\n"
        "    *self.a.lock().unwrap() += 1;\n"
        "    *self.b.lock().unwrap() += 1;\n"
        "    let _ = self.c.lock();\n"
        "    let d = self.d.lock().unwrap();\n"
        "}\n"
    )
    assert _pairs(parse, code) == []


def test_temporaries_held_within_one_statement(parse):
    code = (
        "fn sum(&self) -> i64 {\n"
        "    let total = *self.a.lock().unwrap() + *self.b.lock().unwrap();\n"
        "    total\n"
        "}\n"
    )
    assert _pairs(parse, code) == [("self.a", "self.b")]


def test_if_let_scrutinee_held_for_body(parse):
    code = (
        "fn peek(&self) {\n"
        "    if let Ok(g) = self.a.lock() {\n"
        "        let h = self.b.lock().unwrap();\n"
        "    }\n"
        "}\n"
    )
    assert _pairs(parse, code) == [("self.a", "self.b")]


def test_plain_condition_temporary_not_held_for_body(parse):
    code = (
        "fn check(&self) {\n"
        "    if *self.a.lock().unwrap() > 0 {\n"
        "        let h = self.b.lock().unwrap();\n"
        "    }\n"
        "}\n"
    )
    assert _pairs(parse, code) == []


def test_match_arm_temporaries_do_not_leak_into_next_arm(parse):
    code = (
        "fn apply(m: &Mutex<i32>, op: &Op) {\n"
        "    match op {\n"
        "        Op::Inc => *m.lock().unwrap() += 1,\n"
        "        Op::Dec => *m.lock().unwrap() -= 1,\n"
        "    }\n"
        "}\n"
    )
    assert _pairs(parse, code) == []


def test_match_scrutinee_held_through_arms(parse):
    code = (
        "fn route(&self) {\n"
        "    match self.a.lock().unwrap().kind {\n"
        "        Kind::One => *self.b.lock().unwrap() += 1,\n"
        "        _ => {}\n"
        "    }\n"
        "}\n"
    )
    assert _pairs(parse, code) == [("self.a", "self.b")]


def test_every_held_lock_pairs_with_new_one(parse):
    code = (
        "fn three(&self) {\n"
        "    let a = self.a.lock().unwrap();\n"
        "    let b = self.b.write().unwrap();\n"
        "    let c = self.c.read().unwrap();\n"
        "}\n"
    )
    assert _pairs(parse, code) == [
        ("self.a", "self.b"),
        ("self.a", "self.c"),
        ("self.b", "self.c"),
    ]


def test_closure_starts_with_empty_held_set(parse):
    code = (
        "fn spawn(&self) {\n"
        "    let g = self.a.lock().unwrap();\n"
        "    let f = || {\n"
        "        let h = self.b.lock().unwrap();\n"
        "    };\n"
        "}\n"
    )
    assert _pairs(parse, code) == []


def test_lock_identity_ignores_io_reads(parse):
    root = parse("fn io(f: &mut File, buf: &mut [u8]) { f.read(buf); m.lock(); }")
    calls = [n for n in root.walk() if n.kind == "call_expression"]
    assert [lock_identity(c) for c in calls] == [None, "m"]


def test_receiver_whitespace_is_normalized(parse):
    code = (
        "fn spaced(&self) {\n"
        "    let a = self . a.lock().unwrap();\n"
        "    let b = self.b.lock().unwrap();\n"
        "}\n"
    )
    assert _pairs(parse, code) == [("self.a", "self.b")]


# ── Phase 2: graph ──


def test_graph_accumulates_witnesses():
    graph = LockOrderGraph()
    graph.add_pair(_pair("a", "b", line=1))
    graph.add_pair(_pair("a", "b", line=1))
    graph.add_pair(_pair("a", "b", line=7))
    assert graph.edge_count == 1
    assert [w.location.line for w in graph.witnesses("a", "b")] == [1, 7]


def test_acyclic_graph_has_no_cycles():
    graph = LockOrderGraph()
    graph.add_pairs([_pair("a", "b"), _pair("b", "c"), _pair("a", "c")])
    assert graph.find_cycles() == []


def test_cycles_start_at_smallest_lock():
    graph = LockOrderGraph()
    graph.add_pairs([_pair("c", "a"), _pair("a", "b"), _pair("b", "c")])
    cycles = graph.find_cycles()
    assert len(cycles) == 1
    assert cycles[0].locks == ("a", "b", "c")
    assert cycles[0].edges == [("a", "b"), ("b", "c"), ("c", "a")]
    assert cycles[0].describe() == "a -> b -> c -> a"


def test_every_simple_cycle_reported_once():
    graph = LockOrderGraph()
    graph.add_pairs([_pair("a", "b"), _pair("b", "a"), _pair("b", "c"), _pair("c", "a")])
    assert sorted(c.locks for c in graph.find_cycles()) == [("a", "b"), ("a", "b", "c")]


def test_self_loops_reported_first():
    graph = LockOrderGraph()
    graph.add_pairs([_pair("a", "b"), _pair("b", "a"), _pair("m", "m")])
    assert [c.locks for c in graph.find_cycles()] == [("m",), ("a", "b")]


# ── Whole run ──


def _analyze(registry, *sources, max_workers=1):
    analyzer = Analyzer(registry, max_workers=max_workers)
    report = analyzer.analyze_sources([SourceFile(path=p, content=c) for p, c in sources])
    return [d for d in report.diagnostics if d.rule_id == "E1506"]


def test_inverse_orders_across_files_form_one_cycle(registry, bank_transfer_code, bank_refund_code):
    diagnostics = _analyze(
        registry, ("transfer.rs", bank_transfer_code), ("refund.rs", bank_refund_code)
    )
    assert len(diagnostics) == 1
    d = diagnostics[0]
    assert d.severity == Severity.HIGH
    assert "self.a -> self.b -> self.a" in d.message
    assert "Bank::refund" in d.message and "Bank::transfer" in d.message
    sites = {(loc.file, loc.line) for loc in d.secondary_locations}
    assert sites == {("transfer.rs", 13), ("refund.rs", 5)}
    # Witnesses follow the cycle's edges: self.a -> self.b first
    assert d.secondary_locations[0].file == "transfer.rs"


def test_consistent_orders_have_no_cycle(registry, bank_transfer_code, bank_audit_code):
    diagnostics = _analyze(
        registry, ("transfer.rs", bank_transfer_code), ("audit.rs", bank_audit_code)
    )
    assert diagnostics == []


def test_self_loop_needs_no_second_function(registry):
    code = (
        "fn twice(m: &Mutex<i32>) {\n"
        "    let g = m.lock().unwrap();\n"
        "    let h = m.lock().unwrap();\n"
        "}\n"
    )
    diagnostics = _analyze(registry, ("twice.rs", code))
    assert len(diagnostics) == 1
    assert diagnostics[0].message == "Lock 'm' acquired while already held in twice"
    assert diagnostics[0].location.line == 3


def test_exclusive_match_arms_form_no_cycle(registry):
    one = (
        "fn one(a: &Mutex<i32>, b: &Mutex<i32>, n: u8) {\n"
        "    match n {\n"
        "        0 => *a.lock().unwrap() += 1,\n"
        "        _ => *b.lock().unwrap() += 1,\n"
        "    }\n"
        "}\n"
    )
    two = (
        "fn two(a: &Mutex<i32>, b: &Mutex<i32>) {\n"
        "    let gb = b.lock().unwrap();\n"
        "    let ga = a.lock().unwrap();\n"
        "}\n"
    )
    assert _analyze(registry, ("one.rs", one), ("two.rs", two)) == []


def test_lock_order_output_is_deterministic(
    registry, bank_transfer_code, bank_refund_code, bank_audit_code
):
    sources = (
        ("transfer.rs", bank_transfer_code),
        ("refund.rs", bank_refund_code),
        ("audit.rs", bank_audit_code),
    )
    first = _analyze(registry, *sources)
    second = _analyze(registry, *sources)
    threaded = _analyze(registry, *sources, max_workers=3)
    dump = [d.model_dump_json() for d in first]
    assert dump == [d.model_dump_json() for d in second]
    assert dump == [d.model_dump_json() for d in threaded]
