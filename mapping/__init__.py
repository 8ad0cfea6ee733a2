"""
Mapping package for Mumbai Ward Maps

Viewport bounds, party styling, the ward interaction state machine, folium
rendering and the WardMapView controller.
"""
