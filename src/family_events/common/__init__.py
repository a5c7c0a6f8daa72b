"""Cross-cutting helpers shared by the family events features."""
