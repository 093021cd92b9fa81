"""Fixed lookup tables for the offline distance tiers.

Coordinates are city centres. Intra-state and cross-region mileages are
calibrated constants; they are reproduced as-is rather than derived.
"""

from __future__ import annotations

from typing import Dict, FrozenSet, Tuple

# (city, state abbreviation) -> (lat, lng)
CITY_COORDINATES: Dict[Tuple[str, str], Tuple[float, float]] = {
	("new york", "NY"): (40.7128, -74.0060),
	("brooklyn", "NY"): (40.6782, -73.9442),
	("buffalo", "NY"): (42.8864, -78.8784),
	("rochester", "NY"): (43.1566, -77.6088),
	("albany", "NY"): (42.6526, -73.7562),
	("ithaca", "NY"): (42.4440, -76.5019),
	("syracuse", "NY"): (43.0481, -76.1474),
	("los angeles", "CA"): (34.0522, -118.2437),
	("san francisco", "CA"): (37.7749, -122.4194),
	("san diego", "CA"): (32.7157, -117.1611),
	("san jose", "CA"): (37.3382, -121.8863),
	("sacramento", "CA"): (38.5816, -121.4944),
	("oakland", "CA"): (37.8044, -122.2712),
	("berkeley", "CA"): (37.8715, -122.2730),
	("fresno", "CA"): (36.7378, -119.7871),
	("irvine", "CA"): (33.6846, -117.8265),
	("palo alto", "CA"): (37.4419, -122.1430),
	("santa barbara", "CA"): (34.4208, -119.6982),
	("chicago", "IL"): (41.8781, -87.6298),
	("champaign", "IL"): (40.1164, -88.2434),
	("evanston", "IL"): (42.0451, -87.6877),
	("houston", "TX"): (29.7604, -95.3698),
	("dallas", "TX"): (32.7767, -96.7970),
	("austin", "TX"): (30.2672, -97.7431),
	("san antonio", "TX"): (29.4241, -98.4936),
	("fort worth", "TX"): (32.7555, -97.3308),
	("el paso", "TX"): (31.7619, -106.4850),
	("college station", "TX"): (30.6280, -96.3344),
	("phoenix", "AZ"): (33.4484, -112.0740),
	("tucson", "AZ"): (32.2226, -110.9747),
	("tempe", "AZ"): (33.4255, -111.9400),
	("philadelphia", "PA"): (39.9526, -75.1652),
	("pittsburgh", "PA"): (40.4406, -79.9959),
	("state college", "PA"): (40.7934, -77.8600),
	("jacksonville", "FL"): (30.3322, -81.6557),
	("miami", "FL"): (25.7617, -80.1918),
	("tampa", "FL"): (27.9506, -82.4572),
	("orlando", "FL"): (28.5383, -81.3792),
	("gainesville", "FL"): (29.6516, -82.3248),
	("tallahassee", "FL"): (30.4383, -84.2807),
	("columbus", "OH"): (39.9612, -82.9988),
	("cleveland", "OH"): (41.4993, -81.6944),
	("cincinnati", "OH"): (39.1031, -84.5120),
	("indianapolis", "IN"): (39.7684, -86.1581),
	("bloomington", "IN"): (39.1653, -86.5264),
	("charlotte", "NC"): (35.2271, -80.8431),
	("raleigh", "NC"): (35.7796, -78.6382),
	("durham", "NC"): (35.9940, -78.8986),
	("chapel hill", "NC"): (35.9132, -79.0558),
	("seattle", "WA"): (47.6062, -122.3321),
	("spokane", "WA"): (47.6588, -117.4260),
	("denver", "CO"): (39.7392, -104.9903),
	("boulder", "CO"): (40.0150, -105.2705),
	("colorado springs", "CO"): (38.8339, -104.8214),
	("washington", "DC"): (38.9072, -77.0369),
	("boston", "MA"): (42.3601, -71.0589),
	("cambridge", "MA"): (42.3736, -71.1097),
	("worcester", "MA"): (42.2626, -71.8023),
	("amherst", "MA"): (42.3732, -72.5199),
	("nashville", "TN"): (36.1627, -86.7816),
	("memphis", "TN"): (35.1495, -90.0490),
	("knoxville", "TN"): (35.9606, -83.9207),
	("detroit", "MI"): (42.3314, -83.0458),
	("ann arbor", "MI"): (42.2808, -83.7430),
	("grand rapids", "MI"): (42.9634, -85.6681),
	("east lansing", "MI"): (42.7370, -84.4839),
	("portland", "OR"): (45.5152, -122.6784),
	("eugene", "OR"): (44.0521, -123.0868),
	("las vegas", "NV"): (36.1699, -115.1398),
	("reno", "NV"): (39.5296, -119.8138),
	("louisville", "KY"): (38.2527, -85.7585),
	("lexington", "KY"): (38.0406, -84.5037),
	("baltimore", "MD"): (39.2904, -76.6122),
	("college park", "MD"): (38.9897, -76.9378),
	("milwaukee", "WI"): (43.0389, -87.9065),
	("madison", "WI"): (43.0731, -89.4012),
	("albuquerque", "NM"): (35.0844, -106.6504),
	("santa fe", "NM"): (35.6870, -105.9378),
	("kansas city", "MO"): (39.0997, -94.5786),
	("st. louis", "MO"): (38.6270, -90.1994),
	("saint louis", "MO"): (38.6270, -90.1994),
	("omaha", "NE"): (41.2565, -95.9345),
	("lincoln", "NE"): (40.8136, -96.7026),
	("atlanta", "GA"): (33.7490, -84.3880),
	("athens", "GA"): (33.9519, -83.3576),
	("savannah", "GA"): (32.0809, -81.0912),
	("minneapolis", "MN"): (44.9778, -93.2650),
	("st. paul", "MN"): (44.9537, -93.0900),
	("new orleans", "LA"): (29.9511, -90.0715),
	("baton rouge", "LA"): (30.4515, -91.1871),
	("salt lake city", "UT"): (40.7608, -111.8910),
	("provo", "UT"): (40.2338, -111.6585),
	("virginia beach", "VA"): (36.8529, -75.9780),
	("richmond", "VA"): (37.5407, -77.4360),
	("charlottesville", "VA"): (38.0293, -78.4767),
	("newark", "NJ"): (40.7357, -74.1724),
	("princeton", "NJ"): (40.3573, -74.6672),
	("new brunswick", "NJ"): (40.4862, -74.4518),
	("providence", "RI"): (41.8240, -71.4128),
	("new haven", "CT"): (41.3083, -72.9279),
	("hartford", "CT"): (41.7658, -72.6734),
	("oklahoma city", "OK"): (35.4676, -97.5164),
	("tulsa", "OK"): (36.1540, -95.9928),
	("birmingham", "AL"): (33.5186, -86.8104),
	("tuscaloosa", "AL"): (33.2098, -87.5692),
	("columbia", "SC"): (34.0007, -81.0348),
	("charleston", "SC"): (32.7765, -79.9311),
	("des moines", "IA"): (41.5868, -93.6250),
	("iowa city", "IA"): (41.6611, -91.5302),
	("little rock", "AR"): (34.7465, -92.2896),
	("jackson", "MS"): (32.2988, -90.1848),
	("boise", "ID"): (43.6150, -116.2023),
	("honolulu", "HI"): (21.3069, -157.8583),
	("anchorage", "AK"): (61.2181, -149.9003),
	("burlington", "VT"): (44.4759, -73.2121),
	("manchester", "NH"): (42.9956, -71.4548),
	("portland", "ME"): (43.6591, -70.2568),
	("wilmington", "DE"): (39.7391, -75.5398),
	("charleston", "WV"): (38.3498, -81.6326),
	("morgantown", "WV"): (39.6295, -79.9559),
	("fargo", "ND"): (46.8772, -96.7898),
	("sioux falls", "SD"): (43.5446, -96.7311),
	("billings", "MT"): (45.7833, -108.5007),
	("missoula", "MT"): (46.8721, -113.9940),
	("cheyenne", "WY"): (41.1400, -104.8202),
	("wichita", "KS"): (37.6872, -97.3301),
	("lawrence", "KS"): (38.9717, -95.2353),
}

# Default city for a bare city name that appears in more than one state
PREFERRED_STATE: Dict[str, str] = {
	"portland": "OR",
	"charleston": "SC",
	"columbia": "SC",
	"cambridge": "MA",
	"athens": "GA",
	"richmond": "VA",
	"lexington": "KY",
}

STATE_NAMES: Dict[str, str] = {
	"alabama": "AL", "alaska": "AK", "arizona": "AZ", "arkansas": "AR",
	"california": "CA", "colorado": "CO", "connecticut": "CT", "delaware": "DE",
	"district of columbia": "DC", "florida": "FL", "georgia": "GA", "hawaii": "HI",
	"idaho": "ID", "illinois": "IL", "indiana": "IN", "iowa": "IA",
	"kansas": "KS", "kentucky": "KY", "louisiana": "LA", "maine": "ME",
	"maryland": "MD", "massachusetts": "MA", "michigan": "MI", "minnesota": "MN",
	"mississippi": "MS", "missouri": "MO", "montana": "MT", "nebraska": "NE",
	"nevada": "NV", "new hampshire": "NH", "new jersey": "NJ", "new mexico": "NM",
	"new york": "NY", "north carolina": "NC", "north dakota": "ND", "ohio": "OH",
	"oklahoma": "OK", "oregon": "OR", "pennsylvania": "PA", "rhode island": "RI",
	"south carolina": "SC", "south dakota": "SD", "tennessee": "TN", "texas": "TX",
	"utah": "UT", "vermont": "VT", "virginia": "VA", "washington": "WA",
	"west virginia": "WV", "wisconsin": "WI", "wyoming": "WY",
}

STATE_ABBREVIATIONS: FrozenSet[str] = frozenset(STATE_NAMES.values())

DEFAULT_INTRA_STATE_MILES = 80.0

# Typical distance between two places in the same state
STATE_INTRA_DISTANCE: Dict[str, float] = {
	"AK": 400.0, "AL": 120.0, "AR": 110.0, "AZ": 150.0, "CA": 200.0,
	"CO": 130.0, "CT": 40.0, "DC": 5.0, "DE": 35.0, "FL": 180.0,
	"GA": 130.0, "HI": 100.0, "IA": 110.0, "ID": 150.0, "IL": 120.0,
	"IN": 90.0, "KS": 130.0, "KY": 110.0, "LA": 110.0, "MA": 50.0,
	"MD": 60.0, "ME": 100.0, "MI": 120.0, "MN": 130.0, "MO": 120.0,
	"MS": 100.0, "MT": 200.0, "NC": 120.0, "ND": 150.0, "NE": 150.0,
	"NH": 50.0, "NJ": 40.0, "NM": 150.0, "NV": 180.0, "NY": 120.0,
	"OH": 100.0, "OK": 120.0, "OR": 130.0, "PA": 110.0, "RI": 20.0,
	"SC": 90.0, "SD": 150.0, "TN": 130.0, "TX": 250.0, "UT": 120.0,
	"VA": 110.0, "VT": 50.0, "WA": 130.0, "WI": 110.0, "WV": 80.0,
	"WY": 150.0,
}

STATE_REGIONS: Dict[str, str] = {}
for _region, _states in {
	"northeast": ("CT", "DC", "DE", "MA", "MD", "ME", "NH", "NJ", "NY", "PA", "RI", "VT"),
	"southeast": ("AL", "AR", "FL", "GA", "KY", "LA", "MS", "NC", "SC", "TN", "VA", "WV"),
	"midwest": ("IA", "IL", "IN", "KS", "MI", "MN", "MO", "ND", "NE", "OH", "SD", "WI"),
	"southwest": ("AZ", "NM", "OK", "TX"),
	"west": ("AK", "CA", "CO", "HI", "ID", "MT", "NV", "OR", "UT", "WA", "WY"),
}.items():
	for _state in _states:
		STATE_REGIONS[_state] = _region

SAME_REGION_MILES = 300.0
UNKNOWN_REGION_MILES = 1500.0

# Unordered region pairs
REGION_DISTANCES: Dict[FrozenSet[str], float] = {
	frozenset(("northeast", "southeast")): 800.0,
	frozenset(("northeast", "midwest")): 700.0,
	frozenset(("northeast", "southwest")): 1600.0,
	frozenset(("northeast", "west")): 2500.0,
	frozenset(("southeast", "midwest")): 600.0,
	frozenset(("southeast", "southwest")): 1000.0,
	frozenset(("southeast", "west")): 2200.0,
	frozenset(("midwest", "southwest")): 900.0,
	frozenset(("midwest", "west")): 1500.0,
	frozenset(("southwest", "west")): 800.0,
}


def region_distance(state_a: str, state_b: str) -> float:
	region_a = STATE_REGIONS.get(state_a)
	region_b = STATE_REGIONS.get(state_b)
	if region_a is None or region_b is None:
		return UNKNOWN_REGION_MILES
	if region_a == region_b:
		return SAME_REGION_MILES
	return REGION_DISTANCES.get(frozenset((region_a, region_b)), UNKNOWN_REGION_MILES)


__all__ = [
	"CITY_COORDINATES",
	"DEFAULT_INTRA_STATE_MILES",
	"PREFERRED_STATE",
	"REGION_DISTANCES",
	"SAME_REGION_MILES",
	"STATE_ABBREVIATIONS",
	"STATE_INTRA_DISTANCE",
	"STATE_NAMES",
	"STATE_REGIONS",
	"UNKNOWN_REGION_MILES",
	"region_distance",
]
