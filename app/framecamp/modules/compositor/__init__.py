"""
Compositor module.

Lays a user photo beneath a fixed-size campaign frame on a 1080x1350 surface:
- editor: transform state, pointer mapping, drag and zoom
- render: decode/normalize images, compose, encode exports
- share: download names and share payloads
"""
