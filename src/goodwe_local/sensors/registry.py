"""
Sensor Registry

Per-family register maps. Three canonical tables are shared by all family
codes of the same product line:

    ET-style  hybrid, Modbus registers 35100..35224 (ET, EH, BT, BH, GEH)
    DT-style  three-phase grid-tie, registers 30100..30172 (DT, MS, D-NS, XS)
    ES-style  AA55 storage, byte offsets into the 0186 payload (ES, EM, BP)

The tables are module-level constants and are never mutated.
"""

from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple

from ..errors import UnsupportedFamilyError
from .definitions import FamilyConfig, FamilyProtocol, SensorDefinition
from .definitions import SensorKind as K
from .definitions import SensorType as T

_S = SensorDefinition

ET_REGISTER_START = 35100
ET_REGISTER_COUNT = 125

DT_REGISTER_START = 30100
DT_REGISTER_COUNT = 73

HYBRID_COMM_ADDR = 0xF7
THREE_PHASE_COMM_ADDR = 0x7F


# ============================================================================
# ET-style hybrid inverters
# ============================================================================

ET_SENSORS: Tuple[SensorDefinition, ...] = (
    _S("timestamp",               35100, T.TIMESTAMP,  6, None,   "",    "Timestamp"),
    _S("vpv1",                    35103, T.VOLTAGE,    2, K.PV,   "V",   "PV1 Voltage"),
    _S("ipv1",                    35104, T.CURRENT,    2, K.PV,   "A",   "PV1 Current"),
    _S("ppv1",                    35105, T.POWER4,     4, K.PV,   "W",   "PV1 Power"),
    _S("vpv2",                    35107, T.VOLTAGE,    2, K.PV,   "V",   "PV2 Voltage"),
    _S("ipv2",                    35108, T.CURRENT,    2, K.PV,   "A",   "PV2 Current"),
    _S("ppv2",                    35109, T.POWER4,     4, K.PV,   "W",   "PV2 Power"),
    _S("vpv3",                    35111, T.VOLTAGE,    2, K.PV,   "V",   "PV3 Voltage"),
    _S("ipv3",                    35112, T.CURRENT,    2, K.PV,   "A",   "PV3 Current"),
    _S("ppv3",                    35113, T.POWER4,     4, K.PV,   "W",   "PV3 Power"),
    _S("vpv4",                    35115, T.VOLTAGE,    2, K.PV,   "V",   "PV4 Voltage"),
    _S("ipv4",                    35116, T.CURRENT,    2, K.PV,   "A",   "PV4 Current"),
    _S("ppv4",                    35117, T.POWER4,     4, K.PV,   "W",   "PV4 Power"),
    _S("vgrid",                   35121, T.VOLTAGE,    2, K.AC,   "V",   "On-grid L1 Voltage"),
    _S("igrid",                   35122, T.CURRENT,    2, K.AC,   "A",   "On-grid L1 Current"),
    _S("fgrid",                   35123, T.FREQUENCY,  2, K.AC,   "Hz",  "On-grid L1 Frequency"),
    _S("pgrid",                   35125, T.POWER_S,    2, K.AC,   "W",   "On-grid L1 Power"),
    _S("vgrid2",                  35126, T.VOLTAGE,    2, K.AC,   "V",   "On-grid L2 Voltage"),
    _S("igrid2",                  35127, T.CURRENT,    2, K.AC,   "A",   "On-grid L2 Current"),
    _S("fgrid2",                  35128, T.FREQUENCY,  2, K.AC,   "Hz",  "On-grid L2 Frequency"),
    _S("pgrid2",                  35130, T.POWER_S,    2, K.AC,   "W",   "On-grid L2 Power"),
    _S("vgrid3",                  35131, T.VOLTAGE,    2, K.AC,   "V",   "On-grid L3 Voltage"),
    _S("igrid3",                  35132, T.CURRENT,    2, K.AC,   "A",   "On-grid L3 Current"),
    _S("fgrid3",                  35133, T.FREQUENCY,  2, K.AC,   "Hz",  "On-grid L3 Frequency"),
    _S("pgrid3",                  35135, T.POWER_S,    2, K.AC,   "W",   "On-grid L3 Power"),
    _S("grid_mode",               35136, T.INTEGER,    2, K.PV,   "",    "Grid Mode code"),
    _S("total_inverter_power",    35138, T.POWER_S,    2, K.AC,   "W",   "Total Power"),
    _S("active_power",            35140, T.POWER_S,    2, K.GRID, "W",   "Active Power"),
    _S("reactive_power",          35142, T.REACTIVE,   2, K.GRID, "var", "Reactive Power"),
    _S("apparent_power",          35144, T.APPARENT,   2, K.GRID, "VA",  "Apparent Power"),
    _S("backup_v1",               35145, T.VOLTAGE,    2, K.UPS,  "V",   "Back-up L1 Voltage"),
    _S("backup_i1",               35146, T.CURRENT,    2, K.UPS,  "A",   "Back-up L1 Current"),
    _S("backup_f1",               35147, T.FREQUENCY,  2, K.UPS,  "Hz",  "Back-up L1 Frequency"),
    _S("backup_p1",               35150, T.POWER_S,    2, K.UPS,  "W",   "Back-up L1 Power"),
    _S("backup_v2",               35151, T.VOLTAGE,    2, K.UPS,  "V",   "Back-up L2 Voltage"),
    _S("backup_i2",               35152, T.CURRENT,    2, K.UPS,  "A",   "Back-up L2 Current"),
    _S("backup_f2",               35153, T.FREQUENCY,  2, K.UPS,  "Hz",  "Back-up L2 Frequency"),
    _S("backup_p2",               35156, T.POWER_S,    2, K.UPS,  "W",   "Back-up L2 Power"),
    _S("backup_v3",               35157, T.VOLTAGE,    2, K.UPS,  "V",   "Back-up L3 Voltage"),
    _S("backup_i3",               35158, T.CURRENT,    2, K.UPS,  "A",   "Back-up L3 Current"),
    _S("backup_f3",               35159, T.FREQUENCY,  2, K.UPS,  "Hz",  "Back-up L3 Frequency"),
    _S("backup_p3",               35162, T.POWER_S,    2, K.UPS,  "W",   "Back-up L3 Power"),
    _S("load_p1",                 35164, T.POWER_S,    2, K.AC,   "W",   "Load L1"),
    _S("load_p2",                 35166, T.POWER_S,    2, K.AC,   "W",   "Load L2"),
    _S("load_p3",                 35168, T.POWER_S,    2, K.AC,   "W",   "Load L3"),
    _S("backup_ptotal",           35170, T.POWER_S,    2, K.UPS,  "W",   "Back-up Load"),
    _S("load_ptotal",             35172, T.POWER_S,    2, K.AC,   "W",   "Load"),
    _S("ups_load",                35173, T.INTEGER,    2, K.UPS,  "%",   "Ups Load"),
    _S("temperature_air",         35174, T.TEMP,       2, K.AC,   "C",   "Inverter Temperature (Air)"),
    _S("temperature_module",      35175, T.TEMP,       2, None,   "C",   "Inverter Temperature (Module)"),
    _S("temperature",             35176, T.TEMP,       2, K.AC,   "C",   "Inverter Temperature (Radiator)"),
    _S("bus_voltage",             35178, T.VOLTAGE,    2, None,   "V",   "Bus Voltage"),
    _S("nbus_voltage",            35179, T.VOLTAGE,    2, None,   "V",   "NBus Voltage"),
    _S("vbattery1",               35180, T.VOLTAGE,    2, K.BAT,  "V",   "Battery Voltage"),
    _S("ibattery1",               35181, T.CURRENT_S,  2, K.BAT,  "A",   "Battery Current"),
    _S("pbattery1",               35182, T.POWER4_S,   4, K.BAT,  "W",   "Battery Power"),
    _S("battery_mode",            35184, T.INTEGER,    2, K.BAT,  "",    "Battery Mode code"),
    # lives in the 37000+ battery block, outside the runtime read
    _S("battery_soc",             None,  None,         0, K.BAT,  "%",   "Battery State of Charge"),
    _S("warning_code",            35185, T.INTEGER,    2, None,   "",    "Warning code"),
    _S("safety_country",          35186, T.INTEGER,    2, K.AC,   "",    "Safety Country code"),
    _S("work_mode",               35187, T.INTEGER,    2, None,   "",    "Work Mode code"),
    _S("operation_mode",          35188, T.INTEGER,    2, None,   "",    "Operation Mode code"),
    _S("error_codes",             35189, T.LONG,       4, None,   "",    "Error Codes"),
    _S("e_total",                 35191, T.ENERGY4,    4, K.PV,   "kWh", "Total PV Generation"),
    _S("e_day",                   35193, T.ENERGY4,    4, K.PV,   "kWh", "Today's PV Generation"),
    _S("e_total_exp",             35195, T.ENERGY4,    4, K.AC,   "kWh", "Total Energy (export)"),
    _S("h_total",                 35197, T.LONG,       4, K.PV,   "h",   "Hours Total"),
    _S("e_day_exp",               35199, T.ENERGY,     2, K.AC,   "kWh", "Today Energy (export)"),
    _S("e_total_imp",             35200, T.ENERGY4,    4, K.AC,   "kWh", "Total Energy (import)"),
    _S("e_day_imp",               35202, T.ENERGY,     2, K.AC,   "kWh", "Today Energy (import)"),
    _S("e_load_total",            35203, T.ENERGY4,    4, K.AC,   "kWh", "Total Load"),
    _S("e_load_day",              35205, T.ENERGY,     2, K.AC,   "kWh", "Today Load"),
    _S("e_bat_charge_total",      35206, T.ENERGY4,    4, K.BAT,  "kWh", "Total Battery Charge"),
    _S("e_bat_charge_day",        35208, T.ENERGY,     2, K.BAT,  "kWh", "Today Battery Charge"),
    _S("e_bat_discharge_total",   35209, T.ENERGY4,    4, K.BAT,  "kWh", "Total Battery Discharge"),
    _S("e_bat_discharge_day",     35211, T.ENERGY,     2, K.BAT,  "kWh", "Today Battery Discharge"),
    _S("diagnose_result",         35220, T.LONG,       4, None,   "",    "Diag Status Code"),
)


# ============================================================================
# DT-style three-phase grid-tie inverters
# ============================================================================

DT_SENSORS: Tuple[SensorDefinition, ...] = (
    _S("timestamp",               30100, T.TIMESTAMP,  6, None,   "",    "Timestamp"),
    _S("vpv1",                    30103, T.VOLTAGE,    2, K.PV,   "V",   "PV1 Voltage"),
    _S("ipv1",                    30104, T.CURRENT,    2, K.PV,   "A",   "PV1 Current"),
    _S("vpv2",                    30105, T.VOLTAGE,    2, K.PV,   "V",   "PV2 Voltage"),
    _S("ipv2",                    30106, T.CURRENT,    2, K.PV,   "A",   "PV2 Current"),
    _S("vpv3",                    30107, T.VOLTAGE,    2, K.PV,   "V",   "PV3 Voltage"),
    _S("ipv3",                    30108, T.CURRENT,    2, K.PV,   "A",   "PV3 Current"),
    _S("vline1",                  30115, T.VOLTAGE,    2, K.AC,   "V",   "On-grid L1-L2 Voltage"),
    _S("vline2",                  30116, T.VOLTAGE,    2, K.AC,   "V",   "On-grid L2-L3 Voltage"),
    _S("vline3",                  30117, T.VOLTAGE,    2, K.AC,   "V",   "On-grid L3-L1 Voltage"),
    _S("vgrid1",                  30118, T.VOLTAGE,    2, K.AC,   "V",   "On-grid L1 Voltage"),
    _S("vgrid2",                  30119, T.VOLTAGE,    2, K.AC,   "V",   "On-grid L2 Voltage"),
    _S("vgrid3",                  30120, T.VOLTAGE,    2, K.AC,   "V",   "On-grid L3 Voltage"),
    _S("igrid1",                  30121, T.CURRENT,    2, K.AC,   "A",   "On-grid L1 Current"),
    _S("igrid2",                  30122, T.CURRENT,    2, K.AC,   "A",   "On-grid L2 Current"),
    _S("igrid3",                  30123, T.CURRENT,    2, K.AC,   "A",   "On-grid L3 Current"),
    _S("fgrid1",                  30124, T.FREQUENCY,  2, K.AC,   "Hz",  "On-grid L1 Frequency"),
    _S("fgrid2",                  30125, T.FREQUENCY,  2, K.AC,   "Hz",  "On-grid L2 Frequency"),
    _S("fgrid3",                  30126, T.FREQUENCY,  2, K.AC,   "Hz",  "On-grid L3 Frequency"),
    _S("total_inverter_power",    30127, T.POWER4,     4, K.AC,   "W",   "Total Power"),
    _S("work_mode",               30129, T.INTEGER,    2, None,   "",    "Work Mode code"),
    _S("error_codes",             30130, T.LONG,       4, None,   "",    "Error Codes"),
    _S("warning_code",            30132, T.INTEGER,    2, None,   "",    "Warning code"),
    _S("apparent_power",          30133, T.APPARENT4,  4, K.AC,   "VA",  "Apparent Power"),
    _S("reactive_power",          30135, T.REACTIVE4,  4, K.AC,   "var", "Reactive Power"),
    _S("power_factor",            30139, T.DECIMAL,    2, K.GRID, "",    "Power Factor"),
    _S("temperature",             30141, T.TEMP,       2, K.AC,   "C",   "Inverter Temperature"),
    _S("temperature_heatsink",    30142, T.TEMP,       2, K.AC,   "C",   "Heatsink Temperature"),
    _S("e_day",                   30144, T.ENERGY,     2, K.PV,   "kWh", "Today's PV Generation"),
    _S("e_total",                 30145, T.ENERGY4,    4, K.PV,   "kWh", "Total PV Generation"),
    _S("h_total",                 30147, T.LONG,       4, K.PV,   "h",   "Hours Total"),
    _S("safety_country",          30149, T.INTEGER,    2, K.AC,   "",    "Safety Country code"),
    _S("bus_voltage",             30163, T.VOLTAGE,    2, K.PV,   "V",   "Bus Voltage"),
    _S("nbus_voltage",            30164, T.VOLTAGE,    2, K.PV,   "V",   "NBus Voltage"),
    _S("rssi",                    30172, T.INTEGER,    2, None,   "",    "RSSI"),
)


# ============================================================================
# ES-style AA55 storage inverters (byte offsets)
# ============================================================================

ES_SENSORS: Tuple[SensorDefinition, ...] = (
    _S("vpv1",                    0,     T.VOLTAGE,    2, K.PV,   "V",   "PV1 Voltage"),
    _S("ipv1",                    2,     T.CURRENT,    2, K.PV,   "A",   "PV1 Current"),
    _S("pv1_mode",                4,     T.BYTE,       1, K.PV,   "",    "PV1 Mode code"),
    _S("vpv2",                    5,     T.VOLTAGE,    2, K.PV,   "V",   "PV2 Voltage"),
    _S("ipv2",                    7,     T.CURRENT,    2, K.PV,   "A",   "PV2 Current"),
    _S("pv2_mode",                9,     T.BYTE,       1, K.PV,   "",    "PV2 Mode code"),
    _S("vbattery1",               10,    T.VOLTAGE,    2, K.BAT,  "V",   "Battery Voltage"),
    _S("battery_status",          14,    T.INTEGER,    2, K.BAT,  "",    "Battery Status"),
    _S("battery_temperature",     16,    T.TEMP,       2, K.BAT,  "C",   "Battery Temperature"),
    _S("battery_charge_limit",    20,    T.INTEGER,    2, K.BAT,  "A",   "Battery Charge Limit"),
    _S("battery_discharge_limit", 22,    T.INTEGER,    2, K.BAT,  "A",   "Battery Discharge Limit"),
    _S("battery_error",           24,    T.INTEGER,    2, K.BAT,  "",    "Battery Error Code"),
    _S("battery_soc",             26,    T.BYTE,       1, K.BAT,  "%",   "Battery State of Charge"),
    _S("battery_soh",             29,    T.BYTE,       1, K.BAT,  "%",   "Battery State of Health"),
    _S("battery_mode",            30,    T.BYTE,       1, K.BAT,  "",    "Battery Mode code"),
    _S("battery_warning",         31,    T.INTEGER,    2, K.BAT,  "",    "Battery Warning"),
    _S("meter_status",            33,    T.BYTE,       1, K.AC,   "",    "Meter Status code"),
    _S("vgrid",                   34,    T.VOLTAGE,    2, K.AC,   "V",   "On-grid Voltage"),
    _S("igrid",                   36,    T.CURRENT,    2, K.AC,   "A",   "On-grid Current"),
    _S("fgrid",                   40,    T.FREQUENCY,  2, K.AC,   "Hz",  "On-grid Frequency"),
    _S("grid_mode",               42,    T.BYTE,       1, K.GRID, "",    "Work Mode code"),
    _S("vload",                   43,    T.VOLTAGE,    2, K.UPS,  "V",   "Back-up Voltage"),
    _S("iload",                   45,    T.CURRENT,    2, K.UPS,  "A",   "Back-up Current"),
    _S("pload",                   47,    T.POWER,      2, K.AC,   "W",   "On-grid Power"),
    _S("fload",                   49,    T.FREQUENCY,  2, K.UPS,  "Hz",  "Back-up Frequency"),
    _S("load_mode",               51,    T.BYTE,       1, K.AC,   "",    "Load Mode code"),
    _S("work_mode",               52,    T.BYTE,       1, K.AC,   "",    "Energy Mode code"),
    _S("temperature",             53,    T.TEMP,       2, None,   "C",   "Inverter Temperature"),
    _S("error_codes",             55,    T.LONG,       4, None,   "",    "Error Codes"),
    _S("e_total",                 59,    T.ENERGY4,    4, K.PV,   "kWh", "Total PV Generation"),
    _S("h_total",                 63,    T.LONG,       4, K.PV,   "h",   "Hours Total"),
    _S("e_day",                   67,    T.ENERGY,     2, K.PV,   "kWh", "Today's PV Generation"),
    _S("e_load_day",              69,    T.ENERGY,     2, K.AC,   "kWh", "Today's Load"),
    _S("e_load_total",            71,    T.ENERGY4,    4, K.AC,   "kWh", "Total Load"),
    _S("total_power",             75,    T.POWER_S,    2, K.AC,   "W",   "Total Power"),
    _S("effective_work_mode",     77,    T.BYTE,       1, None,   "",    "Effective Work Mode code"),
    _S("grid_in_out",             80,    T.BYTE,       1, K.GRID, "",    "On-grid Mode code"),
    _S("pback_up",                81,    T.POWER,      2, K.UPS,  "W",   "Back-up Power"),
    _S("meter_power_factor",      83,    T.DECIMAL,    2, K.GRID, "",    "Meter Power Factor"),
    _S("diagnose_result",         89,    T.LONG,       4, None,   "",    "Diag Status Code"),
)


ET_FAMILY = FamilyConfig("ET", ET_SENSORS, FamilyProtocol.MODBUS, ET_REGISTER_START, ET_REGISTER_COUNT)
DT_FAMILY = FamilyConfig("DT", DT_SENSORS, FamilyProtocol.MODBUS, DT_REGISTER_START, DT_REGISTER_COUNT)
ES_FAMILY = FamilyConfig("ES", ES_SENSORS, FamilyProtocol.AA55)

FAMILY_CONFIGS: Mapping[str, FamilyConfig] = MappingProxyType({
    "ET": ET_FAMILY,
    "EH": ET_FAMILY,
    "BT": ET_FAMILY,
    "BH": ET_FAMILY,
    "GEH": ET_FAMILY,
    "DT": DT_FAMILY,
    "MS": DT_FAMILY,
    "D-NS": DT_FAMILY,
    "XS": DT_FAMILY,
    "ES": ES_FAMILY,
    "EM": ES_FAMILY,
    "BP": ES_FAMILY,
})

DEFAULT_COMM_ADDR: Mapping[str, int] = MappingProxyType({
    family: THREE_PHASE_COMM_ADDR if config is DT_FAMILY else HYBRID_COMM_ADDR
    for family, config in FAMILY_CONFIGS.items()
})


def normalize_family(family: Optional[str]) -> str:
    return (family or "").strip().upper()


def get_family_config(family: Optional[str]) -> Optional[FamilyConfig]:
    """Family config for a family code, or None if the code is unknown."""
    return FAMILY_CONFIGS.get(normalize_family(family))


def get_sensors(family: Optional[str]) -> Tuple[SensorDefinition, ...]:
    """
    Sensor definitions of a family.

    Raises:
        UnsupportedFamilyError: If the family code is unknown
    """
    config = get_family_config(family)
    if config is None:
        raise UnsupportedFamilyError(str(family))
    return config.sensors


def get_default_comm_addr(family: Optional[str]) -> int:
    """0x7F for three-phase grid-tie families, 0xF7 for everything else."""
    return DEFAULT_COMM_ADDR.get(normalize_family(family), HYBRID_COMM_ADDR)


def supported_families() -> List[str]:
    return list(FAMILY_CONFIGS.keys())
