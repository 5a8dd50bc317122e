import pandas as pd
import numpy as np
import uuid
from datetime import datetime, timezone, timedelta

# Center around Manila (Rizal Park area)
CENTER_LAT = 14.5995
CENTER_LNG = 120.9842


def generate_mock_vendors(num_vendors=30, output_file="vendors_generated.csv") -> pd.DataFrame:
    """
    Fixed set of vendors (pickup points) scattered within ~5km of the center,
    each with its own delivery radius.
    """
    vendors = pd.DataFrame({
        "vendor_id": [f"v_{str(uuid.uuid4())[:8]}" for _ in range(num_vendors)],
        "name": [f"Restaurant {i + 1}" for i in range(num_vendors)],
        "lat": np.round(CENTER_LAT + np.random.uniform(-0.05, 0.05, num_vendors), 6),
        "lng": np.round(CENTER_LNG + np.random.uniform(-0.05, 0.05, num_vendors), 6),
        "radius_km": np.random.choice([5.0, 8.0, 10.0], size=num_vendors, p=[0.3, 0.4, 0.3]),
    })
    vendors.to_csv(output_file, index=False)
    print(f"✅ Generated {num_vendors} vendors and saved to '{output_file}'")
    return vendors


def generate_mock_orders(vendors: pd.DataFrame, num_orders=500, output_file="orders_generated.csv") -> pd.DataFrame:
    """
    Orders placed by customers within ~3-8km of a random vendor.
    Subtotals are in PHP.
    """
    now = datetime.now(timezone.utc)
    data = []

    for order_index in range(num_orders):
        vendor = vendors.iloc[np.random.randint(0, len(vendors))]

        data.append({
            "order_id": f"o_{str(order_index + 1).zfill(6)}",
            "created_at": (now - timedelta(minutes=int(np.random.randint(0, 60)))).isoformat(),
            "customer_id": f"c_{np.random.randint(1000, 9999)}",
            "vendor_id": vendor["vendor_id"],
            "pickup_lat": vendor["lat"],
            "pickup_lng": vendor["lng"],
            "delivery_lat": np.round(vendor["lat"] + np.random.uniform(-0.05, 0.05), 6),
            "delivery_lng": np.round(vendor["lng"] + np.random.uniform(-0.05, 0.05), 6),
            "items_count": np.random.randint(1, 6),
            "subtotal": np.round(np.random.uniform(120.0, 1500.0), 2),
            "currency": "PHP",
        })

    df = pd.DataFrame(data)
    df.to_csv(output_file, index=False)
    print(f"✅ Generated {num_orders} orders and saved to '{output_file}'")

    print("\nTop 5 Vendors by order count:")
    counts = df["vendor_id"].value_counts().head(5)
    for vendor_id, count in counts.items():
        print(f"  {vendor_id}: {count} orders")
    return df


if __name__ == "__main__":
    vendors = generate_mock_vendors(num_vendors=40)
    generate_mock_orders(vendors, num_orders=1000)
