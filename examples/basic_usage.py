"""Basic usage example for pytranehome library."""

import asyncio

from pytranehome import OperationMode, TraneClient


async def main() -> None:
    """Demonstrate basic usage of pytranehome."""
    async with TraneClient(
        username="your@email.com",
        password="your_password",
    ) as client:
        await client.login()
        print(f"Connected to house {client.house_name} ({client.house_id})")

        for thermostat in client.get_thermostats():
            print(f"\nThermostat: {thermostat.name}")
            print(f"  Model: {thermostat.model}")
            print(f"  Firmware: {thermostat.firmware}")
            print(f"  Online: {thermostat.is_online}")
            print(f"  Status: {thermostat.system_status.value}")
            if thermostat.relative_humidity is not None:
                print(f"  Humidity: {thermostat.relative_humidity:.0%}")
            if thermostat.outdoor_temperature is not None:
                print(f"  Outdoor: {thermostat.outdoor_temperature}°{thermostat.temperature_unit.value}")

            for zone in thermostat.zones:
                print(f"\n  Zone: {zone.name}")
                print(f"    Temperature: {zone.current_temperature}")
                print(f"    Mode: {zone.current_mode.value}")
                print(f"    Setpoints: {zone.heating_setpoint} - {zone.cooling_setpoint}")
                print(f"    Hold: {zone.setpoint_status}")

        for automation in client.get_automations():
            print(f"\nAutomation: {automation.name} (enabled: {automation.enabled})")

        thermostats = client.get_thermostats()
        if thermostats and thermostats[0].zones:
            zone = thermostats[0].zones[0]
            print(f"\nHeating {zone.name} to 68...")
            await zone.set_mode(OperationMode.HEAT)
            await zone.set_heating_setpoint(68)
            print("Done; state has been refreshed.")

        # A second refresh costs one conditional request when nothing changed
        changed = await client.update()
        print(f"\nHouse changed since last refresh: {changed}")


if __name__ == "__main__":
    asyncio.run(main())
