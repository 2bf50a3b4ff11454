import numpy as np
import scipy.integrate as spi

__all__ = ['ModelError', 'SEIR', 'initial_state', 'simulate']

# Row order of the compartment state
compartments = ['S', 'E', 'I', 'R']


class ModelError(RuntimeError):
    ''' The model could not produce a result for the supplied inputs '''
    pass


def initial_state(pop_size, age_dist, n_exposed=1, seed_band=0):
    '''
    Build the initial compartment state: everyone susceptible except a single
    exposed cohort of n_exposed people in age band seed_band.

    Returns a 4 x n_bands array with rows S, E, I, R.
    '''
    age_dist = np.asarray(age_dist, dtype=float)
    n_bands = len(age_dist)
    if not 0 <= seed_band < n_bands:
        errormsg = f'Seed band {seed_band} is not one of the {n_bands} age bands'
        raise ModelError(errormsg)

    state = np.zeros((len(compartments), n_bands))
    state[0,:] = pop_size * age_dist
    state[0,seed_band] -= n_exposed
    state[1,seed_band] = n_exposed

    if state[0,seed_band] < 0:
        errormsg = f'Cannot seed {n_exposed} exposed into band {seed_band}, which only has {pop_size*age_dist[seed_band]:.0f} people'
        raise ModelError(errormsg)

    return state


class SEIR:
    '''
    Simulate an age-structured SEIR system.
    '''

    def __init__(self, contacts, age_dist, R0, sigma=1/4, gamma=1/5):
        '''
        Initialize:
        * contacts is the n x n matrix of daily contacts a person in band i has with band j
        * age_dist is the fraction of the population in each age band
        * R0 is the basic reproduction number, used to set beta
        * sigma is the E-->I rate (1/incubation period)
        * gamma is the I-->R rate (1/infectious period)
        '''

        self.contacts = np.array(contacts, dtype=float)
        self.age_dist = np.array(age_dist, dtype=float)
        self.R0 = R0
        self.sigma = sigma
        self.gamma = gamma

        self._check()
        self.beta = self.calc_beta()

        self.X = None
        self.k = 0 # current step


    def _check(self):
        n = len(self.age_dist)
        if self.contacts.shape != (n, n):
            errormsg = f'Contact matrix has shape {self.contacts.shape}, but there are {n} age bands'
            raise ModelError(errormsg)
        if np.any(self.age_dist <= 0) or not np.isclose(self.age_dist.sum(), 1):
            errormsg = f'Age distribution must be positive and sum to 1, not {self.age_dist}'
            raise ModelError(errormsg)
        if np.any(self.contacts < 0):
            raise ModelError('Contact matrix must be non-negative')
        if self.R0 <= 0 or self.sigma <= 0 or self.gamma <= 0:
            errormsg = f'R0, sigma and gamma must all be positive, not {self.R0}, {self.sigma}, {self.gamma}'
            raise ModelError(errormsg)


    def calc_beta(self):
        '''
        Per-contact transmission probability that gives the requested R0, from the
        spectral radius of the next generation matrix K_ij = beta/gamma * C_ij * N_i/N_j
        '''
        a = self.age_dist
        M = self.contacts * np.outer(a, 1/a)
        rho = np.max(np.abs(np.linalg.eigvals(M)))
        if rho == 0:
            raise ModelError('Contact matrix has no transmission (spectral radius 0)')
        return self.R0 * self.gamma / rho


    def rhs(self, t, y, N, contact_mult, transmission_mult):
        ''' Derivatives of the flattened state [S, E, I, R, cumulative infections] '''
        n = len(N)
        S, E, I, R, C = y.reshape(5, n)
        k = min(int(t), len(contact_mult)-1) # Multipliers are constant within a day

        foi = self.beta * transmission_mult[k] * contact_mult[k] * self.contacts.dot(I/N)
        new_inf = foi * S

        dS = -new_inf
        dE = new_inf - self.sigma*E
        dI = self.sigma*E - self.gamma*I
        dR = self.gamma*I
        return np.concatenate([dS, dE, dI, dR, new_inf])


    def reset(self, state, n_days):
        ''' Reset the state '''
        state = np.array(state, dtype=float)
        n = len(self.age_dist)
        if state.shape != (len(compartments), n):
            errormsg = f'Initial state must have shape {(len(compartments), n)}, not {state.shape}'
            raise ModelError(errormsg)
        if not np.all(np.isfinite(state)) or np.any(state < 0):
            errormsg = f'Initial state has negative or non-finite compartments:\n{state}'
            raise ModelError(errormsg)
        if np.any(state.sum(axis=0) <= 0):
            raise ModelError('Every age band needs a positive population')
        if n_days < 1:
            raise ModelError(f'Cannot run for {n_days} days')

        self.X = np.zeros((5*n, n_days+1))
        self.X[:4*n,0] = state.ravel()
        self.k = 0


    def run(self, state, n_days, contact_mult=None, transmission_mult=None):
        '''
        Integrate from state for n_days days. contact_mult scales the contact
        matrix and transmission_mult scales beta; each holds one value per day.
        '''
        contact_mult = self._multiplier(contact_mult, n_days, 'contact')
        transmission_mult = self._multiplier(transmission_mult, n_days, 'transmission')
        self.reset(state, n_days)

        n = len(self.age_dist)
        N = np.array(state, dtype=float).sum(axis=0)
        sln = spi.solve_ivp(self.rhs, [0, n_days], self.X[:,0], method='RK45', t_eval=np.arange(n_days+1),
                            max_step=0.5, args=(N, contact_mult, transmission_mult))
        if not sln.success:
            errormsg = f'Integration failed after {sln.t[-1] if len(sln.t) else 0} days: {sln.message}'
            raise ModelError(errormsg)
        if not np.all(np.isfinite(sln.y)):
            raise ModelError('Integration produced non-finite compartments')

        self.X = sln.y
        self.k = n_days
        return self.finalize(n)


    @staticmethod
    def _multiplier(values, n_days, which):
        if values is None:
            return np.ones(n_days)
        values = np.asarray(values, dtype=float)
        if len(values) < n_days:
            errormsg = f'The {which} multiplier has {len(values)} values, but {n_days} days were requested'
            raise ModelError(errormsg)
        return values[:n_days]


    def finalize(self, n):
        ''' Package the state for output '''
        X = self.X.reshape(5, n, -1)
        cum = X[4].sum(axis=0)
        results = {
            'day': np.arange(1, self.k+1),
            'S': X[0].sum(axis=0),
            'E': X[1].sum(axis=0),
            'I': X[2].sum(axis=0),
            'R': X[3].sum(axis=0),
            'S_by_age': X[0],
            'incidence': np.maximum(np.diff(cum), 0), # New infections on each day
            'X': self.X,
        }

        return results


def simulate(n_days, state, pars):
    '''
    Run the model once and return the day index (starting at 1) and the incidence on each day.

    pars must contain R0, sigma, gamma, contacts, age_dist, contact_mult and transmission_mult.
    '''
    seir = SEIR(pars['contacts'], pars['age_dist'], R0=pars['R0'], sigma=pars['sigma'], gamma=pars['gamma'])
    results = seir.run(state, n_days, contact_mult=pars['contact_mult'], transmission_mult=pars['transmission_mult'])
    return results['day'], results['incidence']
