import os
import sys
from datetime import datetime, timedelta, timezone

# Add 'backend' folder to Python path
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

# Database models and setup
from database import SessionLocal, init_db
from models.users import User
from models.address import Address
from models.product import Product, ProductVariant
from models.coupon import Coupon
from utils.tokenJWT import token_for_user

# Configuration
CATALOG = [
    ("Classic Oxford Shirt", "Shirts", ["shirt-oxford.jpg"], [
        (39.90, 12, "White", "M"), (39.90, 8, "White", "L"), (42.50, 5, "Blue", "M"),
    ]),
    ("Slim Fit Chinos", "Trousers", ["chinos.jpg"], [
        (54.00, 10, "Beige", "32"), (54.00, 4, "Navy", "34"),
    ]),
    ("Merino Crew Sweater", "Knitwear", ["merino.jpg"], [
        (79.00, 6, "Grey", "M"), (79.00, 2, "Burgundy", "L"),
    ]),
    ("Cotton Socks 3-Pack", "Accessories", ["socks.jpg"], [
        (9.99, 40, "Black", None),
    ]),
]
COUPONS = [("WELCOME10", 10, 90), ("SUMMER25", 25, 30), ("EXPIRED5", 5, -1)]
# End Configuration


def _get_or_create_user(session, email, role, first_name, last_name):
    user = session.query(User).filter(User.email == email).first()
    if not user:
        user = User(email=email, role=role, first_name=first_name, last_name=last_name)
        session.add(user)
        session.flush()
    return user


def load_demo_data():
    """Seeds users, an address, a small catalog and coupons; safe to run twice."""
    init_db()
    session = SessionLocal()
    try:
        admin = _get_or_create_user(session, "admin@example.com", "admin", "Store", "Admin")
        customer = _get_or_create_user(session, "jane@example.com", "customer", "Jane", "Doe")

        if not session.query(Address).filter(Address.user_id == customer.id).first():
            session.add(Address(
                user_id=customer.id, street="12 Market Street", city="Springfield",
                state="IL", country="USA", postal_code="62701", is_default=True,
            ))

        for name, category, images, variants in CATALOG:
            if session.query(Product).filter(Product.name == name).first():
                continue
            product = Product(name=name, category=category, images=images, description=f"{name} ({category})")
            product.variants = [
                ProductVariant(price=price, stock=stock, color=color, size=size)
                for price, stock, color, size in variants
            ]
            session.add(product)

        now = datetime.now(timezone.utc)
        for code, pct, days in COUPONS:
            if not session.query(Coupon).filter(Coupon.code == code).first():
                session.add(Coupon(code=code, discount_percentage=pct, expires_at=now + timedelta(days=days)))

        session.commit()

        print("Demo data ready.")
        print(f"Admin token:    {token_for_user(admin)}")
        print(f"Customer token: {token_for_user(customer)}")
    finally:
        session.close()


if __name__ == "__main__":
    load_demo_data()
