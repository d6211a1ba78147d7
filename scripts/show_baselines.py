from pulse.db import baseline_averages_by_region, rolling_averages

print("Rolling averages (14d, posts per 6h)")
for a in rolling_averages():
    print(f"  {a.region:<15} avg={a.avg_posts_6h:>7} min={a.min_posts:>5} max={a.max_posts:>5} "
          f"latest={a.latest_count:>5} n={a.sample_count}")

print("Per-region baselines (from 'all' breakdown)")
for b in baseline_averages_by_region():
    print(f"  {b.region:<15} avg={b.avg_posts_6h:>7} n={b.sample_count}")
