"""Responsive picture engine.

Common entrypoints:

- `picture_project.framework.variants`: variant identifier encoding/parsing
- `picture_project.framework.replay`: retina variants via manipulation replay
- `picture_project.framework.candidates`: srcset candidate building and rendering
- `picture_project.framework.picture`: picture assembly from a configured style
"""
