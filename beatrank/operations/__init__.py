"""
Operations Layer

Pure calculations with no database access. Services load rows, hand
snapshots to these modules and persist what comes back.

- ClanWeightingCalculator: ownership contest weighting and clan pp
- ProvisionalProjector: pp and rank previews under a pending rating change
"""
