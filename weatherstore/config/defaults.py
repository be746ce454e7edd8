"""Default weather catalog written into an empty database."""

from weatherstore.models.weather import WeatherCondition

DEFAULT_WEATHER_CONDITIONS: list[WeatherCondition] = [
    WeatherCondition(id=1, condition="Sunny", temperature=25, emoji="☀️", mood="energetic"),
    WeatherCondition(id=2, condition="Rainy", temperature=15, emoji="🌧️", mood="cozy"),
    WeatherCondition(id=3, condition="Cloudy", temperature=18, emoji="☁️", mood="contemplative"),
    WeatherCondition(id=4, condition="Snowy", temperature=-2, emoji="❄️", mood="serene"),
    WeatherCondition(id=5, condition="Foggy", temperature=12, emoji="🌫️", mood="mysterious"),
    WeatherCondition(id=6, condition="Partly Cloudy", temperature=22, emoji="⛅", mood="balanced"),
    WeatherCondition(id=7, condition="Stormy", temperature=16, emoji="⛈️", mood="intense"),
    WeatherCondition(id=8, condition="Clear Night", temperature=10, emoji="🌙", mood="romantic"),
    WeatherCondition(id=9, condition="Windy", temperature=14, emoji="💨", mood="restless"),
    WeatherCondition(id=10, condition="Hot", temperature=35, emoji="🔥", mood="passionate"),
    WeatherCondition(id=11, condition="Crisp", temperature=5, emoji="🍂", mood="refreshing"),
    WeatherCondition(id=12, condition="Humid", temperature=28, emoji="💧", mood="sluggish"),
]
