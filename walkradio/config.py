"""Configuration settings for WalkRadio."""

CONFIG = {
    # Simulation cadence
    "tick_period": 1.0,  # seconds between position ticks
    "narration_period": 20.0,  # seconds between narration requests
    "turn_threshold": 30,  # degrees - bearing change reported as a turn
    # Pace
    "default_pace": 20.0,  # km/h
    "min_pace": 0.1,  # km/h
    "max_pace": 50.0,  # km/h
    "earth_radius": 6371000,  # meters
    "log_interval": 10,  # seconds between STATE log entries
    # Routing
    "brouter_host": "brouter.damsy.net",
    "osrm_url": "https://router.project-osrm.org",
    "osrm_profile": "driving",
    "osrm_timeout": 15,  # seconds per request
    "route_fetch_max_time": 10.0,  # seconds - total retry window for routing
    "fallback_points": 15,  # straight-line segments when routing fails
    # Narration
    "langflow_url": "http://localhost:7860/api/v1/run/af5dbb48-ecb9-46ff-98cd-37ebd6d9b915",
    "langflow_session_id": "walkradio_user",
    "narration_timeout": 60,  # seconds - HTTP client timeout only
}
