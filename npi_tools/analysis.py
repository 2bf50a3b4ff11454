'''
Summarize scenario results and produce the report's plots and narrative
'''

#%% Imports

import os
from pathlib import Path

import numpy as np
import pandas as pd
import sciris as sc

import matplotlib.pyplot as plt
import matplotlib as mplt
import matplotlib.dates as mdates
import seaborn as sns


# Global plotting styles
dpi = 150
font_size = 14
mplt.rcParams['font.size'] = font_size
mplt.rcParams['legend.fontsize'] = 11
mplt.rcParams['legend.title_fontsize'] = 11


__all__ = ['summarize', 'Analysis']


#%% Helper functions

def summarize(results):
    '''
    One row per scenario: when incidence peaks, how high, and the cumulative
    and final incidence over the horizon
    '''
    rows = []
    for label, df in results.groupby('label', sort=False):
        peak = df['incidence'].idxmax()
        rows.append(dict(
            label = label,
            peak_date = df.loc[peak, 'date'],
            peak_incidence = df.loc[peak, 'incidence'],
            cum_incidence = df['incidence'].sum(),
            final_incidence = df['incidence'].iloc[-1],
        ))
    return pd.DataFrame(rows)


def fmt_date(date):
    date = pd.Timestamp(date)
    return f'{date.day} {date:%B}'


#%% The analysis class

class Analysis:
    '''
    This class contains code to store, summarize, and plot the results.
    '''

    def __init__(self, results, imgdir, calib_results=None, observed=None, scores=None, dates=None, verbose=True):
        self.results = results
        self.calib_results = calib_results
        self.observed = observed
        self.scores = scores
        self.dates = dates if dates is not None else {}
        self.imgdir = imgdir
        self.verbose = verbose
        Path(self.imgdir).mkdir(parents=True, exist_ok=True)

        self.summary = summarize(self.results) if self.results is not None else None
        self.scenario_order = list(self.results['Scenario'].unique()) if self.results is not None and 'Scenario' in self.results else None
        return


    def _savefig(self, fig, fn):
        filename = os.path.join(self.imgdir, fn)
        sc.savefig(filename, fig=fig, dpi=dpi)
        if self.verbose:
            print(f'Saved {filename}')
        return filename


    def _mark_dates(self, ax):
        ''' Dashed vertical lines at each intervention date '''
        for name, date in self.dates.items():
            ax.axvline(pd.Timestamp(date), color='0.5', ls='--', lw=0.8)
            ax.text(pd.Timestamp(date), 0.98, f' {name}', transform=ax.get_xaxis_transform(), rotation=90, va='top', fontsize=9, color='0.4')
        return


    def _format_dates(self, ax):
        ax.xaxis.set_major_locator(mdates.WeekdayLocator(byweekday=mdates.MO, interval=2))
        ax.xaxis.set_major_formatter(mdates.DateFormatter('%d %b'))
        return


    def plot_observed(self, figsize=(10,5)):
        ''' Daily cases by source, with the trailing mean '''
        if self.observed is None:
            raise ValueError('No observed cases to plot')

        fig, ax = plt.subplots(figsize=figsize)
        local_cols = [c for c in self.observed.columns if c not in ['date', 'day', 'total', 'rolling']]
        bottom = np.zeros(len(self.observed))
        colors = sns.color_palette('Set2', len(local_cols))
        for col, color in zip(local_cols, colors):
            ax.bar(self.observed['date'], self.observed[col], bottom=bottom, color=color, label=col.replace('_', ' ').capitalize())
            bottom += self.observed[col].values
        ax.plot(self.observed['date'], self.observed['rolling'], color='k', lw=2, label='7-day average')
        ax.set_ylabel('Daily cases')
        ax.legend(frameon=False)
        self._format_dates(ax)
        sns.despine()
        plt.tight_layout()
        self._savefig(fig, 'Observed.png')
        return fig


    def plot_calibration(self, height=4, aspect=1.2):
        ''' Calibration grid: one panel per R0, one line per suppression level, with observations '''
        d = self.calib_results
        if d is None:
            raise ValueError('No calibration results to plot')

        g = sns.FacetGrid(data=d, col='Transmissibility', hue='Suppression', height=height, aspect=aspect, sharey=False, palette='viridis')
        g.map_dataframe(sns.lineplot, x='date', y='incidence')
        if self.observed is not None:
            dates = d['date'].unique()
            obs = self.observed.loc[self.observed['date'].isin(dates)]
            for ax in g.axes.flat:
                ax.scatter(obs['date'], obs['rolling'], color='k', s=10, zorder=10)
                self._format_dates(ax)
        g.add_legend()
        g.set_axis_labels('', 'Daily incidence')
        g.set_titles(col_template='{col_name}')
        if self.scores is not None:
            best = self.scores['label'].iloc[0]
            g.figure.suptitle(f'Best fit: {best}', y=1.02)
        self._savefig(g.figure, 'Calibration.png')
        return g


    def plot_schedules(self, figsize=(10,7)):
        ''' Contact and transmission multipliers for each projection scenario '''
        fig, axv = plt.subplots(2, 1, figsize=figsize, sharex=True)
        for ax, col, label in zip(axv, ['contact', 'transmission'], ['Contact multiplier', 'Transmission multiplier']):
            sns.lineplot(data=self.results, x='date', y=col, hue='Scenario', hue_order=self.scenario_order, drawstyle='steps-post', ax=ax, legend='auto' if col=='contact' else False)
            ax.set_ylabel(label)
            ax.set_ylim(0, 1.05)
        self._format_dates(axv[-1])
        axv[-1].set_xlabel('')
        sns.despine()
        plt.tight_layout()
        self._savefig(fig, 'Schedules.png')
        return fig


    def plot_projection(self, figsize=(12,6), log=False):
        ''' Projected incidence under each scenario, with the observations so far '''
        fig, ax = plt.subplots(figsize=figsize)
        sns.lineplot(data=self.results, x='date', y='incidence', hue='Scenario', hue_order=self.scenario_order, palette='tab10', ax=ax)
        if self.observed is not None:
            ax.scatter(self.observed['date'], self.observed['rolling'], color='k', s=12, zorder=10, label='Observed (7-day average)')
        self._mark_dates(ax)
        if log:
            ax.set_yscale('log')
        ax.set_ylabel('Daily incidence')
        ax.set_xlabel('')
        ax.legend(frameon=False)
        self._format_dates(ax)
        sns.despine()
        plt.tight_layout()
        self._savefig(fig, 'Projection_log.png' if log else 'Projection.png')
        return fig


    def describe(self):
        ''' Narrative paragraphs for the report, one per scenario plus a comparison '''
        paras = []
        s = self.summary
        for _, row in s.iterrows():
            para = f'Under "{row.label}", daily incidence peaks on {fmt_date(row.peak_date)} at about {row.peak_incidence:,.0f} new infections, '
            para += f'with {row.cum_incidence:,.0f} infections in total over the period'
            if row.final_incidence < 0.1*row.peak_incidence:
                para += f', falling to {row.final_incidence:,.0f} a day by the end.'
            else:
                para += f', and {row.final_incidence:,.0f} a day still at the end.'
            paras.append(para)

        if len(s) > 1:
            lo = s.loc[s['cum_incidence'].idxmin()]
            hi = s.loc[s['cum_incidence'].idxmax()]
            ratio = hi.cum_incidence / lo.cum_incidence if lo.cum_incidence > 0 else np.inf
            paras.append(f'The largest outbreak is under "{hi.label}" and the smallest under "{lo.label}", a {ratio:,.1f}-fold difference in total infections.')

        if self.scores is not None:
            best = self.scores.iloc[0]
            paras.insert(0, f'Of the {len(self.scores)} calibration runs, "{best.label}" best matches the observed 7-day average (RMSE {best.rmse:,.1f} cases a day).')

        return paras
