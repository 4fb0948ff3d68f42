"""Choose which room sensors drive a zone's temperature."""

import asyncio
import logging

from aiohttp import ClientSession

from pytranehome import TraneClient


async def main() -> None:
    """Activate every room sensor of the first zone and wait for confirmation."""
    logging.basicConfig(level=logging.INFO)

    async with ClientSession() as session:
        client = TraneClient(
            username="your@email.com",
            password="your_password",
            session=session,
            sensor_poll_interval=5,
            sensor_max_polls=8,
        )
        async with client:
            await client.login()
            zone = client.get_thermostats()[0].zones[0]

            for sensor in zone.sensors:
                print(
                    f"{sensor.name}: {sensor.temperature} "
                    f"(active: {sensor.is_active}, battery: {sensor.battery_status.value})"
                )

            confirmed = await zone.select_active_sensors(zone.sensor_ids)
            print(f"Selection confirmed: {confirmed}")


if __name__ == "__main__":
    asyncio.run(main())
