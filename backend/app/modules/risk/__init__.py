"""
Opportunity risk module.

Scores open opportunities from activity and stage signals, ranks them into a
risk radar, and recommends mitigation actions per risk category:
evaluate -> aggregate -> resolve mitigation (generator, else static catalog).

Everything here is stateless; opportunities are read-only snapshots.
"""
