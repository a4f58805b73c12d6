# Area: Session
"""
traitor_sync._session.catalog — Default rooms and tasks
=======================================================

Built-in house catalog used when a session has no room configuration.
Every room and task starts enabled and non-unique.
"""

from typing import Dict, List

DEFAULT_ROOMS_AND_TASKS: Dict[str, List[str]] = {
    "Anywhere": [
        "Power Down Protocol: Close your eyes, stand still, and count out loud for 30 seconds.",
    ],
    "Outside": [
        "Stellar Navigation: Look at the sky for 20 seconds.",
        "Suspicious Surveillance: Stand in front of a neighbor's house for 20 seconds.",
        "House Boundary Scan: Touch all four outside corners of the house.",
        "Prepare the Runway: Lay down and roll across the driveway.",
        "Touch Grass: Remove your footwear and stand on the grass for 5 seconds.",
        "Test Comms: Put your head in the mailbox for 15 seconds.",
    ],
    "Living Room": [
        "Living Room Groove: Dance in the living room for 20 seconds.",
        "Couch Compression Test: Sit on every seat cushion once.",
        "Remote Frequency Calibration: Find the TV remote and press any button.",
        "Light Sync: Turn a lamp off, then on again.",
    ],
    "Kitchen": [
        "Heat Sensor Check: Open the oven/microwave door for 20 seconds, then close it.",
        "Cold Storage Audit: Open the fridge and name three items out loud.",
        "Utensil Sort: Use utensils to spell the word 'ALLY' and then return them.",
        "Water Pressure Test: Run the sink for 3 seconds.",
        "Nutrient Calibration: Touch 3 different types of food and name them out loud.",
    ],
    "Garage": [
        "Navigation Calibration: Touch all 4 corners of the garage.",
        "Tool Inventory Scan: Locate 3 different tools and name them out loud.",
        "Vehicle Diagnostics: Place your hand on a car tire for 20 seconds.",
    ],
    "Bedrooms": [
        "Sleep Reset: Lie face down on a bed for 20 seconds.",
        "Meditation Moment: Assume a meditative pose and hold it for 20 seconds.",
        "Initialization Routine: Do 1 pushup, 1 sit-up, and 1 jumping jack.",
    ],
    "Bathrooms": [
        "Emergency Water Reset: Turn both faucets on and off.",
        "Sit in a bathtub for 15 seconds.",
    ],
    "Closets": [
        "Spend 10 seconds in three different closets. The door must be closed.",
    ],
    "Office": [
        "Data Upload: Read a book in the office for 15 seconds.",
    ],
    "Other": [
        "Put your head in the washing machine for 10 seconds.",
        "Put your head in the dryer for 10 seconds.",
    ],
}


def default_room_config() -> Dict[str, dict]:
    """Return the default catalog in ``GameSettings.rooms`` shape."""
    return {
        room: {
            "enabled": True,
            "tasks": [{"name": task, "enabled": True, "unique": False} for task in tasks],
        }
        for room, tasks in DEFAULT_ROOMS_AND_TASKS.items()
    }
