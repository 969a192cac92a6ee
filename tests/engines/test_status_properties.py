"""
Property-based tests for the status invariants and the net identity.

Random sequences of resolutions and edits are applied to random orders;
every order the engines return must satisfy the data-model invariants.
"""

from decimal import Decimal

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from fulfillment_engines.ledger import resolve_item
from fulfillment_engines.lifecycle import apply_edit
from fulfillment_engines.reconciliation import compute_stats
from fulfillment_kernel.domain.order import Order, OrderEdit, check_invariants
from fulfillment_kernel.domain.values import OrderStatus
from fulfillment_kernel.exceptions import FulfillmentError

item_names = st.sampled_from(["Bolt", "Nut", "Washer", "Pipe", "Valve"])
amounts = st.decimals(min_value=Decimal("0.01"), max_value=Decimal("100000"), places=2)


@st.composite
def open_orders(draw):
    """Orders as they look after items were reported missing: partial, reship set."""
    missing = draw(st.lists(item_names, min_size=1, max_size=6))
    return Order(
        lpo_id="L-001",
        lpo_number="PO-1",
        lpo_date="2024-01-01",
        customer="Acme",
        lpo_value=draw(amounts),
        invoice_value=draw(st.one_of(st.just(Decimal("0")), amounts)),
        invoice_date="2024-01-05",
        status=OrderStatus.PARTIAL,
        missing_items=missing,
        reship=True,
        notes="short shipment",
    )


resolutions = st.lists(
    st.tuples(
        st.integers(min_value=-1, max_value=7),
        st.sampled_from(["ship", "cancel"]),
        st.one_of(amounts, st.just(Decimal("0"))),
    ),
    max_size=10,
)


class TestResolutionInvariants:
    @given(order=open_orders(), steps=resolutions)
    @settings(max_examples=200, suppress_health_check=[HealthCheck.too_slow])
    def test_every_result_satisfies_invariants(self, order, steps):
        for index, action, amount in steps:
            before = order
            try:
                order = resolve_item(order, index, action, amount).order
            except FulfillmentError:
                assert order is before
                continue
            assert check_invariants(order) == []
            assert order.invoice_value >= before.invoice_value
            assert len(order.missing_items) == len(before.missing_items) - 1

    @given(order=open_orders())
    def test_resolving_everything_finishes_the_order(self, order):
        while order.missing_items:
            order = resolve_item(order, 0, "cancel").order
        assert order.status == OrderStatus.DELIVERED_WITH_CANCEL
        assert order.reship is False


class TestEditInvariants:
    @given(
        order=open_orders(),
        missing=st.lists(item_names, max_size=4),
        status=st.one_of(st.none(), st.sampled_from(list(OrderStatus))),
    )
    @settings(max_examples=200)
    def test_accepted_edits_keep_partial_and_reship_rules(self, order, missing, status):
        edit = OrderEdit(
            missing_items=missing,
            status=status,
            invoice_value=Decimal("10"),
            invoice_date="2024-02-01",
        )
        try:
            edited = apply_edit(order, edit).order
        except FulfillmentError:
            return
        assert edited.reship == bool(edited.missing_items)
        if edited.status == OrderStatus.PARTIAL:
            assert edited.missing_items
        if edited.status in (OrderStatus.DELIVERED, OrderStatus.DELIVERED_WITH_CANCEL):
            assert not edited.missing_items


class TestNetIdentity:
    @given(
        pairs=st.lists(
            st.tuples(amounts, st.one_of(st.just(Decimal("0")), amounts)),
            max_size=30,
        )
    )
    def test_net_is_against_minus_favor(self, pairs):
        orders = [
            Order(
                lpo_id=f"L-{i}",
                lpo_number=str(i),
                lpo_date=None,
                customer="Acme",
                lpo_value=lpo,
                invoice_value=invoice,
            )
            for i, (lpo, invoice) in enumerate(pairs)
        ]
        stats = compute_stats(orders)
        assert stats.net == stats.against - stats.favor
        assert stats.favor >= 0 and stats.against >= 0
        assert stats.favor_count + stats.against_count <= stats.disc_count

    @given(
        pairs=st.lists(st.tuples(amounts, amounts), min_size=2, max_size=20),
        cut=st.integers(min_value=0, max_value=20),
    )
    def test_net_is_additive_over_partitions(self, pairs, cut):
        orders = [
            Order(lpo_id=f"L-{i}", lpo_number=str(i), lpo_date=None, customer="Acme",
                  lpo_value=lpo, invoice_value=invoice)
            for i, (lpo, invoice) in enumerate(pairs)
        ]
        whole = compute_stats(orders)
        left = compute_stats(orders[:cut])
        right = compute_stats(orders[cut:])
        assert whole.net == left.net + right.net
