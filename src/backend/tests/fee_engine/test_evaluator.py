from decimal import Decimal

import pytest

from common.fee_engine.errors import RuleCompileError, RuleEvaluationError
from common.fee_engine.evaluator import RuleEvaluator
from common.fee_engine.models import FeeItem
from common.fee_engine.preprocess import preprocess


def evaluate(rule, variables=None, **kwargs):
    return RuleEvaluator(**kwargs).evaluate(preprocess(rule), variables or {}, rule=rule)


def test_single_fee_item():
    res = evaluate('emit(amount * rate, "USD")', {"amount": 1000, "rate": 0.02})
    assert res.fee_items == [FeeItem(amount=Decimal("20"), currency="USD")]
    assert res.updates == {}


def test_list_of_fee_items_keeps_order():
    res = evaluate('[emit(100, "USD"), emit(200, "EUR")]')
    assert [(i.amount, i.currency) for i in res.fee_items] == [(Decimal("100"), "USD"), (Decimal("200"), "EUR")]


def test_list_of_expression_strings_fans_out():
    rule = """["emit(amount * 0.01, 'USD')", "emit(amount * 0.02, 'EUR')"]"""
    res = evaluate(rule, {"amount": 1000})
    assert res.fee_items == [
        FeeItem(amount=Decimal("10"), currency="USD"),
        FeeItem(amount=Decimal("20"), currency="EUR"),
    ]


def test_expression_string_may_return_a_list_of_fee_items():
    res = evaluate("""["[emit(1, 'USD'), emit(2, 'USD')]", "emit(3, 'EUR')"]""")
    assert [i.amount for i in res.fee_items] == [Decimal("1"), Decimal("2"), Decimal("3")]


def test_non_fee_items_in_a_list_are_ignored():
    res = evaluate('[emit(1, "USD"), null, 5]')
    assert res.fee_items == [FeeItem(amount=Decimal("1"), currency="USD")]


@pytest.mark.parametrize("rule", ["null", "nil", "None", "amount > 10", '"text"', "[]", "[1, 2]"])
def test_values_without_fee_items_are_a_no_op(rule):
    assert evaluate(rule, {"amount": 5}) is None


def test_conditional_emission_skipped():
    assert evaluate('emit(coupon, "KES") if coupon > 0 else nil', {"coupon": 0}) is None


def test_conditional_emission_taken():
    res = evaluate('emit(neg(coupon), "KES") if coupon > 0 else nil', {"coupon": 200})
    assert res.fee_items == [FeeItem(amount=Decimal("-200"), currency="KES")]


def test_assignment_only_records_update_without_fee_items():
    res = evaluate("value = value * 2", {"value": 100})
    assert res.fee_items == []
    assert res.updates == {"value": 200}


def test_assignment_visible_to_following_statements():
    res = evaluate('a = 1; b = a + 1; emit(b, "USD")')
    assert res.updates == {"a": 1, "b": 2}
    assert res.fee_items == [FeeItem(amount=Decimal("2"), currency="USD")]


def test_assign_function_can_be_called_directly():
    res = evaluate('assign("flag", amount > 10)', {"amount": 20})
    assert res.updates == {"flag": True}


def test_evaluate_does_not_mutate_input_variables():
    variables = {"amount": 1000}
    evaluate("amount = amount * 2", variables)
    assert variables == {"amount": 1000}


def test_emit_accepts_string_and_decimal_amounts():
    res = evaluate('[emit("12.345", "USD"), emit(add(1, 2), "USD"), emit("bad", "USD")]')
    assert [i.amount for i in res.fee_items] == [Decimal("12.345"), Decimal("3"), Decimal("0")]


@pytest.mark.parametrize(
    "expression, expected",
    [
        ("add(0.1, 0.2)", Decimal("0.3")),
        ("sub(1, '0.4')", Decimal("0.6")),
        ("mul(amount, rate)", Decimal("30.003")),
        ("div(10, 4)", Decimal("2.5")),
        ("neg(5)", Decimal("-5")),
        ("mul(add(amount, 0.9), 0.5)", Decimal("500.5")),
    ],
)
def test_decimal_helpers(expression, expected):
    res = evaluate(f'emit({expression}, "USD")', {"amount": 1000.1, "rate": 0.03})
    assert res.fee_items[0].amount == expected
    assert isinstance(res.fee_items[0].amount, Decimal)


def test_decimal_precision_applies_to_helpers():
    res = evaluate('emit(div(1, 3), "USD")', decimal_precision=5)
    assert res.fee_items[0].amount == Decimal("0.33333")


@pytest.mark.parametrize(
    "expression, expected",
    [
        ('add("100000000000000000000000000", "0.01")', Decimal("100000000000000000000000000.01")),
        ('sub("100000000000000000000000000", "0.01")', Decimal("99999999999999999999999999.99")),
        (
            'mul("123456789012345678901234567", "1000.0001")',
            Decimal("123456801358024580135802457123.4567"),
        ),
        ('neg("1234567890123456789012345678.9")', Decimal("-1234567890123456789012345678.9")),
    ],
)
def test_helpers_other_than_div_never_round(expression, expected):
    res = evaluate(f'emit({expression}, "USD")', decimal_precision=5)
    assert res.fee_items[0].amount == expected


def test_multi_line_rule_is_a_compile_fault():
    rule = 'emit(1, "USD")\nemit(2, "USD")'
    with pytest.raises(RuleCompileError) as excinfo:
        evaluate(rule)
    assert excinfo.value.kind == "compile"
    assert excinfo.value.expression == rule


def test_bracketed_expression_may_span_lines():
    res = evaluate('[\n    emit(1, "USD"),\n    emit(2, "USD"),\n]')
    assert [i.amount for i in res.fee_items] == [Decimal("1"), Decimal("2")]


def test_compile_fault():
    with pytest.raises(RuleCompileError) as excinfo:
        evaluate('emit(10, "USD"')
    assert excinfo.value.index is None
    assert excinfo.value.expression == 'emit(10, "USD"'


@pytest.mark.parametrize(
    "rule, variables",
    [
        ('emit(amount * missing, "USD")', {"amount": 1000}),
        ('emit(amount * rate, "USD")', {"amount": 1000, "rate": None}),
        ('emit(div(amount, 0), "USD")', {"amount": 1}),
        ("emit(1, 2)", {}),
        ('unknown_fn(1, "USD")', {}),
        ("amount = missing + 1", {}),
    ],
)
def test_evaluation_faults(rule, variables):
    with pytest.raises(RuleEvaluationError) as excinfo:
        evaluate(rule, variables)
    assert excinfo.value.kind == "evaluation"
    assert excinfo.value.__cause__ is not None


def test_fault_in_expression_string_reports_that_expression():
    with pytest.raises(RuleEvaluationError) as excinfo:
        evaluate("""["emit(1, 'USD')", "emit(missing, 'USD')"]""")
    assert excinfo.value.expression == "emit(missing, 'USD')"


def test_empty_rule_is_a_no_op():
    assert RuleEvaluator().evaluate([], {}) is None
