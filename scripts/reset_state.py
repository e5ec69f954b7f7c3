"""Reset all tracking state in Redis (useful for testing)."""

import asyncio

from order_tracker.state.manager import StateManager


async def reset_all_state() -> None:
    """Clear all data from Redis."""
    print("\n⚠️  WARNING: This will delete ALL orders and queued notifications from Redis!")
    response = input("Are you sure? (yes/no): ")

    if response.lower() != "yes":
        print("Cancelled.")
        return

    print("\nResetting state...")

    state_manager = StateManager()
    await state_manager.connect()
    await state_manager.flush()
    await state_manager.disconnect()

    print("✓ All state cleared from Redis\n")


if __name__ == "__main__":
    asyncio.run(reset_all_state())
