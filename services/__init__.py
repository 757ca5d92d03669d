"""
TELELINK Services Package

Equipment Control
-----------------
- services.alpaca: ASCOM Alpaca telescope driver
- services.telescope: Driver session, communication cycle, goto sequencer
  and time-compensated position buffer

Astronomy
---------
- services.ephemeris: J2000 <-> JNow frame conversion (Skyfield)
"""
