"""Notification templates - user-facing copy, one entry per kind and slot.

The text is a contract with the mobile app and its users; change it only
together with the app.
"""

ATTENDANCE_CATEGORY = "ATTENDANCE_CATEGORY"

REMINDER_TEMPLATES = {
    "manual_reminder": {
        "10am": {
            "title": "🌅 Morning Check-in",
            "body": "Good morning! Remember to log your work location for today.",
            "time": "10:00 AM",
        },
        "1pm": {
            "title": "☀️ Afternoon Reminder",
            "body": "Quick reminder: Have you logged your location today?",
            "time": "1:00 PM",
        },
        "4pm": {
            "title": "🌆 End of Day Reminder",
            "body": "Don't forget to log your work location before you finish!",
            "time": "4:00 PM",
        },
    },
    "auto_reminder": {
        "6pm": {
            "title": "🏢 Location Not Logged",
            "body": "Your location wasn't detected today. Please open the app to manually log your attendance.",
            "time": "6:00 PM",
        },
    },
}

DEFAULT_SLOTS = {
    "manual_reminder": "10am",
    "auto_reminder": "6pm",
}

GEOFENCE_TEMPLATE = {
    "title": "📍 Near Office Detected",
    "body": "Tap to confirm office attendance, or use buttons to change.",
}

TEST_TEMPLATE = {
    "title": "🧪 Test Notification",
    "body": "This is a test notification from the office tracker!",
}

WEEKLY_SUMMARY_EMOJI = {
    "monday": "📅",
    "friday": "📊",
}


def weekly_summary_title(weekday_name: str) -> str:
    """Title for the weekly summary sent on ``weekday_name``."""
    day = weekday_name.lower()
    emoji = WEEKLY_SUMMARY_EMOJI.get(day, "📊")
    return f"{emoji} {day.capitalize()} Office Check"
