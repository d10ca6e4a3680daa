import logging

import pytest

from specql.core.expressions import Conditional, OrderTerm, Predicate
from specql.core.filters import Computed, FilterSpec, Literal
from specql.core.interpreter import QueryInterpreter, interpret
from specql.core.joins import BindingTable, ensure_joins
from specql.core.plan import assemble_plan
from specql.core.sorting import SortSpec
from specql.errors import (
    ComputedDefaultError,
    InvalidNullComparisonError,
    MalformedSortTokenError,
    UnknownAssociationError,
    UnknownFieldError,
    UnknownSchemaError,
    UnsupportedDepthError,
)
from tests.schema import build_registry, chain_registry

IS_ACTIVE = FilterSpec(
    key='is_active',
    field='archived_at',
    operator=Conditional('is_nil', 'not_nil'),
    allow_nil=False,
    default=True,
)

REGION_NAME = [('region_name', ('by_association_field', ['customer', 'region'], 'name', '==', False, None))]


@pytest.fixture
def interpreter():
    return QueryInterpreter(build_registry())


def test_absent_key_applies_default(interpreter):
    plan = interpreter.interpret('Order', [IS_ACTIVE], {})
    assert plan.predicates == (Predicate(0, 'archived_at', 'is_nil', None),)


def test_explicit_false_flips_conditional(interpreter):
    plan = interpreter.interpret('Order', [IS_ACTIVE], {'is_active': False})
    assert plan.predicates == (Predicate(0, 'archived_at', 'not_nil', None),)


def test_explicit_null_suppresses_default(interpreter):
    plan = interpreter.interpret('Order', [IS_ACTIVE], {'is_active': None})
    assert plan.predicates == ()


def test_explicit_null_with_allow_nil_filters_on_null(interpreter):
    spec = FilterSpec('archived', 'archived_at', allow_nil=True)
    plan = interpreter.interpret('Order', [spec], {'archived': None})
    assert plan.predicates == (Predicate(0, 'archived_at', 'is_nil', None),)


def test_absent_allow_nil_without_default_filters_on_null(interpreter):
    spec = FilterSpec('archived', 'archived_at', operator='!=', allow_nil=True)
    plan = interpreter.interpret('Order', [spec], {})
    assert plan.predicates == (Predicate(0, 'archived_at', 'not_nil', None),)


def test_absent_key_without_default_adds_nothing(interpreter):
    spec = FilterSpec('reference', 'reference')
    assert interpreter.interpret('Order', [spec], {}).predicates == ()


def test_literal_and_computed_defaults_agree(interpreter):
    literal = interpreter.interpret('Order', [FilterSpec('n', 'total', default=Literal(123))], {})
    computed = interpreter.interpret('Order', [FilterSpec('n', 'total', default=Computed(lambda: 123))], {})
    assert literal.predicates == computed.predicates == (Predicate(0, 'total', '==', 123),)


def test_literal_none_default_is_a_null_test(interpreter):
    plan = interpreter.interpret('Order', [FilterSpec('archived', 'archived_at', default=Literal(None))], {})
    assert plan.predicates == (Predicate(0, 'archived_at', 'is_nil', None),)


def test_failing_computed_default(interpreter):
    def broken():
        raise LookupError('no tenant')

    spec = FilterSpec('tenant', 'customer_id', default=Computed(broken))
    with pytest.raises(ComputedDefaultError):
        interpreter.interpret('Order', [spec], {})


def test_region_name_scenario(interpreter):
    plan = interpreter.interpret('Order', REGION_NAME, {'region_name': 'west'})
    assert plan.aliases == ('customer', 'customer_region')
    assert [b.depth for b in plan.bindings] == [1, 2]
    assert plan.predicates == (Predicate(2, 'name', '==', 'west'),)


def test_shared_path_is_joined_once(interpreter):
    filters = REGION_NAME + [('vip', ('by_association_field', ['customer'], 'is_vip', '==', False))]
    sorts = [('region', ('by_association_field', ['customer', 'region'], 'name', 'asc'))]
    plan = interpreter.interpret('Order', filters, {'region_name': 'west', 'vip': True}, sorts, ['region'])
    assert plan.aliases == ('customer', 'customer_region')
    assert plan.predicates == (Predicate(2, 'name', '==', 'west'), Predicate(1, 'is_vip', '==', True))
    assert plan.order_terms == (OrderTerm(2, 'name', 'asc'),)


def test_through_association_path_matches_explicit_path(interpreter):
    via_through = [('region_name', ('by_association_field', ['region'], 'name', '==', False))]
    a = interpreter.interpret('Order', via_through, {'region_name': 'west'})
    b = interpreter.interpret('Order', REGION_NAME, {'region_name': 'west'})
    assert a.bindings == b.bindings
    assert a.predicates == b.predicates


def test_explicit_filters_bind_before_defaults(interpreter):
    specs = [
        FilterSpec('vip', 'is_vip', ('customer',), default=True),
        FilterSpec('line_qty', 'quantity', ('lines',), operator='>'),
    ]
    plan = interpreter.interpret('Order', specs, {'line_qty': 1})
    assert plan.aliases == ('lines', 'customer')
    assert plan.predicates == (Predicate(1, 'quantity', '>', 1), Predicate(2, 'is_vip', '==', True))


def test_unknown_request_keys_are_ignored(interpreter, caplog):
    with caplog.at_level(logging.DEBUG, logger='specql.core.interpreter'):
        plan = interpreter.interpret('Order', [], {'nope': 1})
    assert plan.predicates == ()
    assert 'nope' in caplog.text


def test_unknown_field_on_target(interpreter):
    spec = FilterSpec('planet', 'planet', ('customer',))
    with pytest.raises(UnknownFieldError) as exc:
        interpreter.interpret('Order', [spec], {'planet': 'mars'})
    assert exc.value.schema == 'Customer'


def test_unknown_association_in_spec(interpreter):
    spec = FilterSpec('x', 'name', ('warehouse',))
    with pytest.raises(UnknownAssociationError):
        interpreter.interpret('Order', [spec], {'x': 'a'})


def test_unknown_base_schema(interpreter):
    with pytest.raises(UnknownSchemaError):
        interpreter.interpret('Invoice', [], {})


def test_null_with_ordering_operator_fails(interpreter):
    spec = FilterSpec('min_total', 'total', operator='>', allow_nil=True)
    with pytest.raises(InvalidNullComparisonError):
        interpreter.interpret('Order', [spec], {'min_total': None})


def test_sort_defaults_apply_in_spec_order(interpreter):
    sorts = [
        SortSpec('newest', 'created_at', direction='desc', is_default=True),
        SortSpec('ref', 'reference'),
        SortSpec('id', 'id', is_default=True),
    ]
    plan = interpreter.interpret('Order', [], {}, sorts, [])
    assert plan.order_terms == (OrderTerm(0, 'created_at', 'desc'), OrderTerm(0, 'id', 'asc'))


def test_explicit_sort_overrides_every_default(interpreter):
    sorts = [
        SortSpec('newest', 'created_at', direction='desc', is_default=True),
        SortSpec('ref', 'reference'),
        SortSpec('id', 'id', is_default=True),
    ]
    plan = interpreter.interpret('Order', [], {}, sorts, ['ref:desc', 'bogus:asc'])
    assert plan.order_terms == (OrderTerm(0, 'reference', 'desc'),)


def test_only_unknown_sort_tokens_fall_back_to_defaults(interpreter):
    sorts = [SortSpec('id', 'id', direction='desc', is_default=True)]
    plan = interpreter.interpret('Order', [], {}, sorts, ['bogus'])
    assert plan.order_terms == (OrderTerm(0, 'id', 'desc'),)


def test_malformed_token_for_known_key(interpreter):
    with pytest.raises(MalformedSortTokenError):
        interpreter.interpret('Order', [], {}, [SortSpec('id', 'id')], ['id:sideways'])


def test_interpretations_do_not_share_state(interpreter):
    first = interpreter.interpret('Order', REGION_NAME, {'region_name': 'west'})
    second = interpreter.interpret('Order', REGION_NAME, {})
    assert len(first.bindings) == 2
    assert len(second.bindings) == 0


def test_depth_ceiling_through_interpreter():
    registry = chain_registry(22)
    spec = FilterSpec('deep', 'name', ('next',) * 22)
    with pytest.raises(UnsupportedDepthError):
        interpret(registry, 'Node0', [spec], {'deep': 'x'})
    ok = FilterSpec('deep', 'name', ('next',) * 21)
    plan = interpret(registry, 'Node0', [ok], {'deep': 'x'})
    assert plan.predicates == (Predicate(21, 'name', '==', 'x'),)
    assert plan.aliases[-1] == '_'.join(['next'] * 21)


@pytest.mark.parametrize('token', ['id:desc:x', 5])
def test_malformed_or_non_string_token(interpreter, token):
    with pytest.raises(MalformedSortTokenError):
        interpreter.interpret('Order', [], {}, [SortSpec('id', 'id')], [token])


def test_assembled_terms_must_point_at_a_binding():
    registry = build_registry()
    table = ensure_joins(BindingTable(), registry.resolve('Order', ['customer']))
    plan = assemble_plan('Order', table, [Predicate(1, 'name', '==', 'Alice')], [OrderTerm(0, 'id')])
    assert plan.describe()['where'] == [(1, 'name', '==', 'Alice')]
    with pytest.raises(UnsupportedDepthError):
        assemble_plan('Order', table, [Predicate(3, 'name', '==', 'Alice')])
    with pytest.raises(UnsupportedDepthError):
        assemble_plan('Order', table, [], [OrderTerm(2, 'name')])
