import csv
import random

# Same center as the generated vendors/orders (Manila)
BASE_LAT = 14.5995
BASE_LNG = 120.9842


def generate_mock_drivers(filename="mock_drivers_100.csv", count=100):
    with open(filename, mode='w', newline='') as file:
        writer = csv.writer(file)
        writer.writerow(["driver_id", "lat", "lng", "status"])

        for i in range(count):
            driver_id = f"DRV-{str(i + 1).zfill(3)}"

            # Scatter drivers around the city center (roughly +/- 8km)
            lat = BASE_LAT + (random.random() - 0.5) * 0.15
            lng = BASE_LNG + (random.random() - 0.5) * 0.15

            # 80% available, 20% offline
            status = "available" if random.random() < 0.8 else "offline"

            writer.writerow([driver_id, round(lat, 6), round(lng, 6), status])

    print(f"Successfully generated {count} mock drivers into '{filename}'.")


if __name__ == "__main__":
    generate_mock_drivers()
