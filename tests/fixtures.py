"""Database fixtures for specql tests (shared)."""

from datetime import datetime, timedelta
from decimal import Decimal

import pytest
from sqlalchemy.ext.asyncio import AsyncSession

from .models import Customer, Order, OrderLine, Product, Region


async def seed_populated_db(session: AsyncSession):
    """Seed regions, customers, orders and lines with deterministic values."""
    west = Region(name="west")
    east = Region(name="east")
    session.add_all([west, east])
    await session.flush()

    alice = Customer(name="Alice", is_vip=True, region_id=west.id)
    bob = Customer(name="Bob", is_vip=False, region_id=east.id)
    carol = Customer(name="Carol", is_vip=False, region_id=west.id)
    nomad = Customer(name="Nomad", is_vip=False, region_id=None)
    session.add_all([alice, bob, carol, nomad])
    await session.flush()

    base = datetime(2024, 1, 1, 12, 0, 0)
    orders = [
        Order(reference="A-1", total=Decimal("10.00"), customer_id=alice.id, created_at=base),
        Order(reference="A-2", total=Decimal("25.50"), customer_id=alice.id, created_at=base + timedelta(days=1)),
        Order(reference="B-1", total=Decimal("7.25"), customer_id=bob.id, created_at=base + timedelta(days=2)),
        Order(
            reference="C-1",
            total=Decimal("99.99"),
            customer_id=carol.id,
            created_at=base + timedelta(days=3),
            archived_at=base + timedelta(days=4),
        ),
        Order(reference="N-1", total=Decimal("1.00"), customer_id=nomad.id, created_at=base + timedelta(days=5)),
    ]
    session.add_all(orders)
    await session.flush()

    widget = Product(sku="W-1", name="Widget")
    gadget = Product(sku="G-1", name="Gadget")
    session.add_all([widget, gadget])
    await session.flush()

    lines = [
        OrderLine(order_id=orders[0].id, product_id=widget.id, quantity=2),
        OrderLine(order_id=orders[0].id, product_id=gadget.id, quantity=1),
        OrderLine(order_id=orders[2].id, product_id=widget.id, quantity=5),
    ]
    session.add_all(lines)
    await session.flush()
    await session.commit()
    # later queries load fresh rows rather than the seeded instances
    session.expunge_all()
    return {
        'regions': [west, east],
        'customers': [alice, bob, carol, nomad],
        'orders': orders,
        'products': [widget, gadget],
        'lines': lines,
    }


@pytest.fixture(scope="function")
async def populated_db(db_session: AsyncSession):
    return await seed_populated_db(db_session)
