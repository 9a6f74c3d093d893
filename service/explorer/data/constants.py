# Column names of the observation table.
CITY = "city"
TIMESTAMP = "timestamp"
TEMP_F = "temperature_f"
OZONE_PPB = "ozone_ppb"
NO2_PPB = "no2_ppb"
WIND_DIRECTION_DEG = "wind_direction_deg"
WIND_SPEED = "wind_speed"
WEATHER_GROUP = "weather_group"

# Numeric measurement columns. Any of them may be NaN.
MEASUREMENT_COLUMNS = [
    TEMP_F,
    OZONE_PPB,
    NO2_PPB,
    WIND_DIRECTION_DEG,
    WIND_SPEED,
]

OBSERVATION_COLUMNS = [CITY, TIMESTAMP] + MEASUREMENT_COLUMNS + [WEATHER_GROUP]

# Column names of the city metadata table.
LATITUDE = "latitude"
LONGITUDE = "longitude"
CLIMATE_LABEL = "climate_label"

CITY_COLUMNS = [CITY, LATITUDE, LONGITUDE, CLIMATE_LABEL]

# Columns derived from TIMESTAMP on demand. Never stored in the table.
DX_YEAR = "year"
DX_MONTH = "month"
DX_HOUR = "hour"

# Columns of aggregated data.
DX_VALUE_COUNT = "value_count"
DX_MEAN_TEMP_F = "mean_temperature_f"
DX_MEAN_OZONE_PPB = "mean_ozone_ppb"
DX_MEAN_NO2_PPB = "mean_no2_ppb"

DX_MEAN_COLUMN_MAP = {
    TEMP_F: DX_MEAN_TEMP_F,
    OZONE_PPB: DX_MEAN_OZONE_PPB,
    NO2_PPB: DX_MEAN_NO2_PPB,
}

# Columns of binned data.
DX_X_BIN = "x_bin"
DX_Y_BIN = "y_bin"
