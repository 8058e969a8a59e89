"""Candidate discovery tiers: known-for, primary source, expanded scrape,
community source and hail-mary search."""
