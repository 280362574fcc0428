"""rulecheck/core — Types, expressions, rules, errors and configuration."""
